"""Homework digest bot package.

Modules:
- config: environment, logging and the Config object
- sheets: Google Sheets access and loaded cell ranges
- storage: homework data over the main/schedule/technical sheets
- schedule: weekday and rotation resolution
- formatting: digest text and subject keyboard
- disclosure: subject prompt sessions with idle timers
- jobs: scheduled digest and cleanup jobs
- auth: target chat guard
- commands: telegram handlers
- app: application bootstrap and wiring
"""

from .config import Config, DIGEST_HEADER, PROMPT_TEXT, NOT_RECORDED_TEXT, logger
from .state import (
    HomeworkBotError,
    ScheduleError,
    SheetRangeError,
    DisclosurePhase,
    DisclosureSession,
    Subject,
)
from .sheets import CellRange, SheetsClient
from .storage import HomeworkStore
from .schedule import resolve_day, rotation_parity, next_school_day, is_school_day
from .formatting import fmt_digest, fmt_reveal_line, build_subject_keyboard
from .disclosure import DisclosureRegistry, HomeworkDisclosure
from .jobs import DigestJobs, register_jobs
from .auth import is_target_chat, guard_target_chat
from .commands import text_cmd, subject_button, is_digest_request, is_update_request
from .app import main, build_application, startup_health_check

__all__ = [
    # Config / errors / types
    "Config", "DIGEST_HEADER", "PROMPT_TEXT", "NOT_RECORDED_TEXT", "logger",
    "HomeworkBotError", "ScheduleError", "SheetRangeError", "DisclosurePhase", "DisclosureSession", "Subject",
    # Spreadsheet
    "CellRange", "SheetsClient", "HomeworkStore",
    # Core
    "resolve_day", "rotation_parity", "next_school_day", "is_school_day",
    "fmt_digest", "fmt_reveal_line", "build_subject_keyboard",
    "DisclosureRegistry", "HomeworkDisclosure",
    # Jobs / handlers / app
    "DigestJobs", "register_jobs", "is_target_chat", "guard_target_chat",
    "text_cmd", "subject_button", "is_digest_request", "is_update_request",
    "main", "build_application", "startup_health_check",
]
