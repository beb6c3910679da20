from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class HomeworkBotError(Exception):
    """Base error for the homework bot."""


class ScheduleError(HomeworkBotError, ValueError):
    """Invalid weekday or rotation parity passed to the schedule resolver."""


class SheetRangeError(HomeworkBotError, IndexError):
    """A cell outside the loaded spreadsheet range was requested."""


class DisclosurePhase(Enum):
    """Disclosure session phases for the state machine"""
    COLLAPSED = "collapsed"
    REVEALING = "revealing"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class Subject:
    name: str
    homework: str
    label: str
    row: int


@dataclass
class DisclosureSession:
    """Live state of one subject prompt message."""

    message_id: int
    chat_id: int
    text: str
    reply_markup: Any = None
    command_message_id: Optional[int] = None
    revealed: List[str] = field(default_factory=list)
    phase: DisclosurePhase = DisclosurePhase.COLLAPSED
    timer: Optional[asyncio.Task] = None

    def reveal(self, line: str) -> int:
        self.revealed.append(line)
        self.text = f"{self.text}\n{line}"
        self.phase = DisclosurePhase.REVEALING
        return len(self.revealed)
