from __future__ import annotations

import os
import logging
from dataclasses import dataclass


def load_env() -> None:
    """Load environment variables from a .env file if available."""
    from dotenv import load_dotenv

    load_dotenv()


# Load env early
load_env()

# Logging configuration
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, log_level, logging.INFO),
)
logger = logging.getLogger("hwbot")

# Reduce noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("telegram.ext.ExtBot").setLevel(logging.WARNING)
logging.getLogger("telegram.ext.Updater").setLevel(logging.WARNING)
logging.getLogger("telegram.ext.Application").setLevel(logging.WARNING)
logging.getLogger("telegram.bot").setLevel(logging.WARNING)
logging.getLogger("apscheduler").setLevel(logging.WARNING)
logging.getLogger("urllib3").setLevel(logging.WARNING)
logging.getLogger("google.auth").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)


# Chat-facing texts
DIGEST_HEADER = "<b>Дз на завтра:</b>"
PROMPT_TEXT = "Вибери предмет:"
NOT_RECORDED_TEXT = "ДЗ не записали"

# Variables without which the bot refuses to start
REQUIRED_VARS = (
    "GOOGLE_SERVICE_ACCOUNT_EMAIL",
    "GOOGLE_PRIVATE_KEY",
    "GOOGLE_SHEETS_ID",
    "BOT_TOKEN",
    "CHAT_ID",
)


def _int_env(name: str, default: int | None) -> int | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.error(f"{name} must be an integer, got {raw!r}")
        return None


def _float_env(name: str, default: float) -> float | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.error(f"{name} must be a number, got {raw!r}")
        return None


def decode_private_key(raw: str) -> str:
    # Keys pasted into .env usually carry literal "\n" sequences
    return raw.replace("\\n", "\n")


@dataclass
class Config:
    """Bot configuration. Built from the environment by ``from_env``."""

    # Google service account / spreadsheet
    GOOGLE_SERVICE_ACCOUNT_EMAIL: str | None = None
    GOOGLE_PRIVATE_KEY: str | None = None
    GOOGLE_SHEETS_ID: str | None = None

    # Telegram
    BOT_TOKEN: str | None = None
    CHAT_ID: int | None = None

    # Scheduling. APScheduler crontab: day-of-week numbers start at mon=0, use names.
    TIMEZONE: str = "Europe/Kyiv"
    DIGEST_CRON: str = "0 15 * * mon-fri"
    CLEAR_CRON: str = "40 8 * * mon-fri"

    # Interactive disclosure
    IDLE_TIMEOUT_SECS: float | None = 30.0
    REVEAL_CAP: int | None = 5

    # Spreadsheet layout
    DAYS_PER_WEEK: int | None = 5
    PERIODS_PER_DAY: int | None = 7
    NOT_RECORDED_TEXT: str = NOT_RECORDED_TEXT
    MAIN_SHEET: str = "main"
    SCHEDULE_SHEET: str = "schedule"
    TECHNICAL_SHEET: str = "technical"
    MAIN_RANGE: str = "A1:C20"
    SCHEDULE_RANGE: str = "A2:H15"
    TECHNICAL_RANGE: str = "B1:B10"
    WEEK_NUMBER_CELL: str = "B1"
    SUBJECT_COUNT_CELL: str = "B3"
    PINNED_MESSAGE_CELL: str = "B4"

    @classmethod
    def from_env(cls) -> "Config":
        defaults = cls()
        private_key = os.getenv("GOOGLE_PRIVATE_KEY")
        return cls(
            GOOGLE_SERVICE_ACCOUNT_EMAIL=os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL", "").strip() or None,
            GOOGLE_PRIVATE_KEY=decode_private_key(private_key) if private_key else None,
            GOOGLE_SHEETS_ID=os.getenv("GOOGLE_SHEETS_ID", "").strip() or None,
            BOT_TOKEN=os.getenv("BOT_TOKEN", "").strip() or None,
            CHAT_ID=_int_env("CHAT_ID", None),
            TIMEZONE=os.getenv("TIMEZONE", defaults.TIMEZONE).strip(),
            DIGEST_CRON=os.getenv("DIGEST_CRON", defaults.DIGEST_CRON).strip(),
            CLEAR_CRON=os.getenv("CLEAR_CRON", defaults.CLEAR_CRON).strip(),
            IDLE_TIMEOUT_SECS=_float_env("IDLE_TIMEOUT_SECS", defaults.IDLE_TIMEOUT_SECS),
            REVEAL_CAP=_int_env("REVEAL_CAP", defaults.REVEAL_CAP),
            DAYS_PER_WEEK=_int_env("DAYS_PER_WEEK", defaults.DAYS_PER_WEEK),
            PERIODS_PER_DAY=_int_env("PERIODS_PER_DAY", defaults.PERIODS_PER_DAY),
            NOT_RECORDED_TEXT=os.getenv("NOT_RECORDED_TEXT", defaults.NOT_RECORDED_TEXT),
            MAIN_SHEET=os.getenv("MAIN_SHEET", defaults.MAIN_SHEET),
            SCHEDULE_SHEET=os.getenv("SCHEDULE_SHEET", defaults.SCHEDULE_SHEET),
            TECHNICAL_SHEET=os.getenv("TECHNICAL_SHEET", defaults.TECHNICAL_SHEET),
            MAIN_RANGE=os.getenv("MAIN_RANGE", defaults.MAIN_RANGE),
            SCHEDULE_RANGE=os.getenv("SCHEDULE_RANGE", defaults.SCHEDULE_RANGE),
            TECHNICAL_RANGE=os.getenv("TECHNICAL_RANGE", defaults.TECHNICAL_RANGE),
        )

    def missing_vars(self) -> list[str]:
        return [name for name in REQUIRED_VARS if getattr(self, name) in (None, "")]

    def validate_config(self) -> None:
        missing = self.missing_vars()
        if missing:
            raise ValueError(f"Missing one or more environment variables: {', '.join(missing)}")
        if self.IDLE_TIMEOUT_SECS is None or self.IDLE_TIMEOUT_SECS <= 0:
            raise ValueError("IDLE_TIMEOUT_SECS must be a positive number")
        if self.REVEAL_CAP is None or self.REVEAL_CAP < 1:
            raise ValueError("REVEAL_CAP must be an integer of at least 1")
        if self.DAYS_PER_WEEK is None or not 1 <= self.DAYS_PER_WEEK <= 7:
            raise ValueError("DAYS_PER_WEEK must be an integer within 1..7")
        if self.PERIODS_PER_DAY is None or self.PERIODS_PER_DAY < 1:
            raise ValueError("PERIODS_PER_DAY must be an integer of at least 1")
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
        try:
            ZoneInfo(self.TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown TIMEZONE {self.TIMEZONE!r}") from e

    @property
    def tzinfo(self):
        from zoneinfo import ZoneInfo
        return ZoneInfo(self.TIMEZONE)
