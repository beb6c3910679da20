"""
Weekday and rotation helpers for the schedule sheet.

The schedule grid holds two bands of school days, one per rotation week:
row ``weekday + parity * days_per_week`` (0-based, absolute) describes that
day, column 0 is a day label and columns ``1..periods`` hold subject names.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, List, Optional, Protocol, Tuple

from .state import ScheduleError


class CellGrid(Protocol):
    def get_cell(self, row: int, col: int) -> Any: ...


def rotation_parity(week_number: int) -> int:
    return week_number % 2


def is_school_day(day: date, days_per_week: int = 5) -> bool:
    return day.isoweekday() <= days_per_week


def resolve_day(
    grid: CellGrid,
    weekday: int,
    parity: int,
    days_per_week: int = 5,
    periods: int = 7,
) -> List[Optional[str]]:
    """
    Subjects scheduled for one day, in period order.

    Args:
        grid: Loaded schedule sheet
        weekday: 1 (Monday) .. days_per_week
        parity: Rotation parity, 0 or 1

    Returns:
        List of length ``periods``; empty cells are ``None``.
    """
    if isinstance(weekday, bool) or not isinstance(weekday, int) or not 1 <= weekday <= days_per_week:
        raise ScheduleError(f"weekday must be within 1..{days_per_week}, got {weekday!r}")
    if parity not in (0, 1) or isinstance(parity, bool):
        raise ScheduleError(f"rotation parity must be 0 or 1, got {parity!r}")

    row = weekday + parity * days_per_week
    result: List[Optional[str]] = []
    for period in range(periods):
        value = grid.get_cell(row, period + 1)
        text = str(value).strip() if value is not None else ""
        result.append(text or None)
    return result


def next_school_day(today: date, parity: int, days_per_week: int = 5) -> Tuple[int, int]:
    """
    Weekday and parity of the first school day after ``today``.

    Crossing into the next ISO week flips the parity, so a Friday digest
    reads next Monday from the other rotation band.
    """
    target = today + timedelta(days=1)
    while not is_school_day(target, days_per_week):
        target += timedelta(days=1)
    if target.isocalendar()[:2] != today.isocalendar()[:2]:
        parity = 1 - parity
    return target.isoweekday(), parity
