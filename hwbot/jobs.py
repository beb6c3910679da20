from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from apscheduler.triggers.cron import CronTrigger
from telegram.error import TelegramError
from telegram.ext import ContextTypes, JobQueue

from .config import Config, logger
from .formatting import fmt_digest
from .schedule import is_school_day, next_school_day
from .storage import HomeworkStore


class DigestJobs:
    """The two calendar jobs: publish tomorrow's digest and clear today's homework."""

    def __init__(self, store: HomeworkStore, config: Config):
        self.store = store
        self.config = config
        self.pinned_message_id: Optional[int] = None

    def today(self) -> date:
        return datetime.now(self.config.tzinfo).date()

    async def publish(self, bot, today: Optional[date] = None) -> int:
        """Unpin the previous digest, send and pin a new one. Returns its message id."""
        today = today or self.today()
        chat_id = self.config.CHAT_ID
        await self.store.refresh()

        previous = self.pinned_message_id or self.store.pinned_message_id()
        if previous:
            try:
                await bot.unpin_chat_message(chat_id, message_id=previous)
            except TelegramError as e:
                logger.warning(f"Could not unpin previous digest {previous}: {e}")

        weekday, parity = next_school_day(today, self.store.rotation_parity(), self.config.DAYS_PER_WEEK)
        text = fmt_digest(self.store.schedule_for(weekday, parity), self.store.subjects())

        sent = await bot.send_message(chat_id, text, parse_mode="HTML")
        await bot.pin_chat_message(chat_id, sent.message_id)
        self.pinned_message_id = sent.message_id
        await self.store.set_pinned_message_id(sent.message_id)
        logger.info(f"📌 Digest {sent.message_id} posted for weekday {weekday} (parity {parity})")
        return sent.message_id

    async def clear(self, today: Optional[date] = None) -> int:
        """Mark the homework of today's subjects as not recorded. Returns rows reset."""
        today = today or self.today()
        if not is_school_day(today, self.config.DAYS_PER_WEEK):
            logger.info(f"{today.isoformat()} is not a school day, nothing to clear")
            return 0

        await self.store.refresh()
        subjects = self.store.schedule_for(today.isoweekday(), self.store.rotation_parity())
        reset = await self.store.reset_homework(subjects)
        logger.info(f"🧹 Cleared homework for {reset} subjects")
        return reset

    async def post_digest(self, context: ContextTypes.DEFAULT_TYPE) -> None:
        try:
            await self.publish(context.bot)
        except Exception:
            logger.exception("Digest job failed")

    async def clear_stale(self, context: ContextTypes.DEFAULT_TYPE) -> None:
        try:
            await self.clear()
        except Exception:
            logger.exception("Clear job failed")


def register_jobs(job_queue: JobQueue, jobs: DigestJobs, config: Config) -> None:
    tz = config.tzinfo
    job_queue.run_custom(
        jobs.post_digest,
        job_kwargs={"trigger": CronTrigger.from_crontab(config.DIGEST_CRON, timezone=tz)},
        name="post_digest",
    )
    job_queue.run_custom(
        jobs.clear_stale,
        job_kwargs={"trigger": CronTrigger.from_crontab(config.CLEAR_CRON, timezone=tz)},
        name="clear_stale",
    )
    logger.info(f"⏰ Jobs scheduled: digest '{config.DIGEST_CRON}', clear '{config.CLEAR_CRON}' ({config.TIMEZONE})")
