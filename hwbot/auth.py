from __future__ import annotations

from telegram import Update

from .config import Config, logger


def is_target_chat(update: Update, config: Config) -> bool:
    chat = update.effective_chat
    if chat is None:
        return False
    return chat.id == config.CHAT_ID


def guard_target_chat(update: Update, config: Config) -> bool:
    if not is_target_chat(update, config):
        chat = update.effective_chat
        logger.debug(f"Ignoring update from chat {chat.id if chat else None}")
        return False
    return True
