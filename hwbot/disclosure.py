from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

from telegram.error import TelegramError

from .config import PROMPT_TEXT, Config, logger
from .formatting import build_subject_keyboard, fmt_reveal_line
from .state import DisclosurePhase, DisclosureSession
from .storage import HomeworkStore

TimeoutCallback = Callable[[DisclosureSession], Awaitable[None]]


class DisclosureRegistry:
    """Owns the live disclosure sessions and their idle timers, keyed by message id."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._sessions: Dict[int, DisclosureSession] = {}

    def __contains__(self, message_id: int) -> bool:
        return message_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, message_id: int) -> Optional[DisclosureSession]:
        return self._sessions.get(message_id)

    def active_timers(self, message_id: Optional[int] = None) -> int:
        sessions = self._sessions.values() if message_id is None else [self._sessions.get(message_id)]
        return sum(1 for s in sessions if s is not None and s.timer is not None and not s.timer.done())

    def start(self, session: DisclosureSession, on_timeout: TimeoutCallback) -> DisclosureSession:
        if session.message_id in self._sessions:
            self.cancel(session.message_id)
        self._sessions[session.message_id] = session
        self._schedule(session, on_timeout)
        return session

    def reset(self, message_id: int, on_timeout: TimeoutCallback) -> DisclosureSession:
        session = self._sessions[message_id]
        self._cancel_timer(session)
        self._schedule(session, on_timeout)
        return session

    def cancel(self, message_id: int) -> Optional[DisclosureSession]:
        session = self._sessions.pop(message_id, None)
        if session is not None:
            self._cancel_timer(session)
            session.phase = DisclosurePhase.FINALIZED
        return session

    def _cancel_timer(self, session: DisclosureSession) -> None:
        if session.timer is not None and not session.timer.done():
            session.timer.cancel()
        session.timer = None

    def _schedule(self, session: DisclosureSession, on_timeout: TimeoutCallback) -> None:
        async def idle_timer():
            try:
                await asyncio.sleep(self.timeout)
            except asyncio.CancelledError:
                logger.debug(f"Idle timer for message {session.message_id} cancelled")
                return

            # Detach before the callback so the entry never outlives finalization
            if self._sessions.get(session.message_id) is session:
                del self._sessions[session.message_id]
            session.timer = None
            session.phase = DisclosurePhase.FINALIZED
            try:
                await on_timeout(session)
            except Exception as e:
                logger.error(f"Idle timeout handling failed for message {session.message_id}: {e}")

        session.timer = asyncio.create_task(idle_timer())


class HomeworkDisclosure:
    """Subject prompt with inline buttons that reveal one subject's homework per press."""

    def __init__(self, bot, store: HomeworkStore, config: Config, registry: Optional[DisclosureRegistry] = None):
        self.bot = bot
        self.store = store
        self.config = config
        self.registry = registry or DisclosureRegistry(config.IDLE_TIMEOUT_SECS)

    async def send_prompt(self, chat_id: int, command_message_id: Optional[int] = None) -> DisclosureSession:
        keyboard = build_subject_keyboard(self.store.subjects())
        sent = await self.bot.send_message(chat_id, PROMPT_TEXT, reply_markup=keyboard, parse_mode="HTML")
        session = DisclosureSession(
            message_id=sent.message_id,
            chat_id=chat_id,
            text=PROMPT_TEXT,
            reply_markup=keyboard,
            command_message_id=command_message_id,
        )
        logger.debug(f"Subject prompt {sent.message_id} sent to chat {chat_id}")
        return self.registry.start(session, self._on_timeout)

    def _adopt(self, chat_id: int, message_id: int, text_html: Optional[str], reply_markup: Any) -> DisclosureSession:
        """Rebuild a session for a prompt the registry does not know (e.g. after a restart)."""
        lines = (text_html or PROMPT_TEXT).split("\n")
        session = DisclosureSession(
            message_id=message_id,
            chat_id=chat_id,
            text=lines[0],
            reply_markup=reply_markup,
        )
        for line in lines[1:]:
            session.reveal(line)
        return session

    async def press(
        self,
        chat_id: int,
        message_id: int,
        label: str,
        text_html: Optional[str] = None,
        reply_markup: Any = None,
    ) -> bool:
        """Handle a subject button press. Returns False when the press is ignored."""
        if chat_id != self.config.CHAT_ID:
            return False

        subject = self.store.subject_by_label(label)
        if subject is None:
            logger.warning(f"Button '{label}' does not match any subject label")
            return False

        session = self.registry.get(message_id)
        if session is None:
            session = self.registry.start(
                self._adopt(chat_id, message_id, text_html, reply_markup), self._on_timeout
            )

        revealed = session.reveal(fmt_reveal_line(subject))
        if revealed >= self.config.REVEAL_CAP:
            self.registry.cancel(message_id)
            await self.bot.edit_message_text(
                session.text, chat_id=chat_id, message_id=message_id, parse_mode="HTML"
            )
            logger.debug(f"Prompt {message_id} finalized after {revealed} reveals")
        else:
            self.registry.reset(message_id, self._on_timeout)
            await self.bot.edit_message_text(
                session.text,
                chat_id=chat_id,
                message_id=message_id,
                reply_markup=session.reply_markup,
                parse_mode="HTML",
            )
        return True

    async def _on_timeout(self, session: DisclosureSession) -> None:
        if not session.revealed:
            for message_id in (session.message_id, session.command_message_id):
                if message_id is None:
                    continue
                try:
                    await self.bot.delete_message(session.chat_id, message_id)
                except TelegramError as e:
                    logger.warning(f"Could not delete message {message_id}: {e}")
            return

        try:
            await self.bot.edit_message_text(
                session.text, chat_id=session.chat_id, message_id=session.message_id, parse_mode="HTML"
            )
        except TelegramError as e:
            logger.warning(f"Could not finalize prompt {session.message_id}: {e}")
