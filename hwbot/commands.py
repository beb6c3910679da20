from __future__ import annotations

from typing import Optional

from telegram import Message, Update
from telegram.ext import ContextTypes

from .auth import guard_target_chat
from .config import Config, logger

DIGEST_ALIASES = frozenset({"/homework", "/hw", "hw", "дз", "зд"})
UPDATE_ALIASES = frozenset({"update", "/update"})


def normalize_command(text: str, bot_username: Optional[str] = None) -> str:
    """Lower-cased command text with a trailing ``@botname`` removed."""
    command = text.strip().lower()
    if bot_username and command.startswith("/"):
        suffix = f"@{bot_username.lower()}"
        if command.endswith(suffix):
            command = command[: -len(suffix)]
    return command


def is_digest_request(text: str, bot_username: Optional[str] = None) -> bool:
    return normalize_command(text, bot_username) in DIGEST_ALIASES


def is_update_request(text: str, bot_username: Optional[str] = None) -> bool:
    return normalize_command(text, bot_username) in UPDATE_ALIASES


async def text_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE):
    message = update.effective_message
    if message is None or not message.text:
        return
    config: Config = context.bot_data["config"]
    if not guard_target_chat(update, config):
        return

    username = context.bot.username
    if is_digest_request(message.text, username):
        disclosure = context.bot_data["disclosure"]
        await disclosure.send_prompt(message.chat_id, message.message_id)
    elif is_update_request(message.text, username):
        store = context.bot_data["store"]
        try:
            await store.refresh()
            logger.info(f"🔄 Manual spreadsheet reload requested in chat {message.chat_id}")
        except Exception as e:
            logger.error(f"❌ Manual spreadsheet reload failed: {e}")


async def subject_button(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    if query is None or query.message is None:
        return
    config: Config = context.bot_data["config"]
    if not guard_target_chat(update, config):
        return

    await query.answer()
    if not isinstance(query.message, Message):
        # Too old to edit
        return
    disclosure = context.bot_data["disclosure"]
    await disclosure.press(
        query.message.chat_id,
        query.message.message_id,
        query.data or "",
        text_html=query.message.text_html,
        reply_markup=query.message.reply_markup,
    )
