from __future__ import annotations

from collections import Counter
from dataclasses import replace
from typing import Any, Iterable, List, Optional

from .config import Config, logger
from .schedule import resolve_day, rotation_parity
from .sheets import CellRange, SheetsClient
from .state import Subject

# main sheet columns
NAME_COL = 0
HOMEWORK_COL = 1
LABEL_COL = 2


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


class HomeworkStore:
    """Spreadsheet-backed homework data.

    Holds the last loaded snapshot of the ``main``, ``schedule`` and
    ``technical`` sheets. ``refresh`` must run before any read.
    """

    def __init__(self, client: SheetsClient, config: Config):
        self.client = client
        self.config = config
        self.main: Optional[CellRange] = None
        self.schedule: Optional[CellRange] = None
        self.technical: Optional[CellRange] = None
        self._subjects: Optional[List[Subject]] = None

    async def refresh(self) -> None:
        cfg = self.config
        self.main = await self.client.load_range(cfg.MAIN_SHEET, cfg.MAIN_RANGE)
        self.schedule = await self.client.load_range(cfg.SCHEDULE_SHEET, cfg.SCHEDULE_RANGE)
        self.technical = await self.client.load_range(cfg.TECHNICAL_SHEET, cfg.TECHNICAL_RANGE)
        self._subjects = self._read_subjects()
        self._warn_duplicates(self._subjects)
        logger.info(f"Spreadsheet data refreshed ({len(self._subjects)} subjects)")

    def _require(self, cells: Optional[CellRange], name: str) -> CellRange:
        if cells is None:
            raise RuntimeError(f"Sheet '{name}' not loaded yet, call refresh() first")
        return cells

    # technical sheet

    def week_number(self) -> int:
        technical = self._require(self.technical, "technical")
        week = _as_int(technical.get_cell_by_a1(self.config.WEEK_NUMBER_CELL))
        if week is None:
            logger.warning(f"Week number cell {self.config.WEEK_NUMBER_CELL} is empty, assuming week 0")
            return 0
        return week

    def rotation_parity(self) -> int:
        return rotation_parity(self.week_number())

    def subject_count(self) -> int:
        technical = self._require(self.technical, "technical")
        count = _as_int(technical.get_cell_by_a1(self.config.SUBJECT_COUNT_CELL))
        if count is not None:
            return count
        main = self._require(self.main, "main")
        count = 0
        for row in range(1, main.end_row):
            if not _as_text(main.get_cell(row, NAME_COL)):
                break
            count += 1
        logger.warning(f"Subject count cell {self.config.SUBJECT_COUNT_CELL} is empty, counted {count} rows")
        return count

    def pinned_message_id(self) -> Optional[int]:
        technical = self._require(self.technical, "technical")
        return _as_int(technical.get_cell_by_a1(self.config.PINNED_MESSAGE_CELL))

    async def set_pinned_message_id(self, message_id: int) -> None:
        technical = self._require(self.technical, "technical")
        technical.set_cell_by_a1(self.config.PINNED_MESSAGE_CELL, message_id)
        await self.client.save(technical)
        logger.debug(f"Pinned digest id {message_id} saved")

    # main sheet

    def _read_subjects(self) -> List[Subject]:
        main = self._require(self.main, "main")
        rows: List[Subject] = []
        count = self.subject_count()
        if count >= main.end_row:
            logger.warning(f"Subject count {count} exceeds the loaded range {self.config.MAIN_RANGE}")
            count = main.end_row - 1
        for row in range(1, count + 1):
            name = _as_text(main.get_cell(row, NAME_COL))
            if not name:
                continue
            rows.append(Subject(
                name=name,
                homework=_as_text(main.get_cell(row, HOMEWORK_COL)),
                label=_as_text(main.get_cell(row, LABEL_COL)) or name,
                row=row,
            ))
        return rows

    @staticmethod
    def _warn_duplicates(rows: List[Subject]) -> None:
        for attr in ("name", "label"):
            counts = Counter(getattr(r, attr) for r in rows)
            for value, n in counts.items():
                if n > 1:
                    logger.warning(f"Subject {attr} '{value}' appears in {n} rows, the first one wins")

    def subjects(self) -> List[Subject]:
        if self._subjects is None:
            raise RuntimeError("Subjects not loaded yet, call refresh() first")
        return list(self._subjects)

    def find_subject(self, name: str) -> Optional[Subject]:
        for subject in self.subjects():
            if subject.name == name:
                return subject
        return None

    def subject_by_label(self, label: str) -> Optional[Subject]:
        for subject in self.subjects():
            if subject.label == label:
                return subject
        return None

    async def reset_homework(self, names: Iterable[Optional[str]]) -> int:
        """Set the homework of each named subject to the "not recorded" text."""
        main = self._require(self.main, "main")
        reset = 0
        for name in names:
            if name is None:
                continue
            subject = self.find_subject(name)
            if subject is None:
                logger.warning(f"Scheduled subject '{name}' has no row in the {self.config.MAIN_SHEET} sheet")
                continue
            main.set_cell(subject.row, HOMEWORK_COL, self.config.NOT_RECORDED_TEXT)
            self._subjects = [
                replace(s, homework=self.config.NOT_RECORDED_TEXT) if s.row == subject.row else s
                for s in self._subjects
            ]
            reset += 1
        await self.client.save(main)
        return reset

    # schedule sheet

    def schedule_for(self, weekday: int, parity: int) -> List[Optional[str]]:
        grid = self._require(self.schedule, "schedule")
        return resolve_day(
            grid,
            weekday,
            parity,
            days_per_week=self.config.DAYS_PER_WEEK,
            periods=self.config.PERIODS_PER_DAY,
        )
