from __future__ import annotations

import math
from typing import List, Optional, Sequence

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from .config import DIGEST_HEADER, logger
from .state import Subject


def _escape_html(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _find_first(rows: Sequence[Subject], name: str) -> Optional[Subject]:
    for row in rows:
        if row.name == name:
            return row
    return None


def fmt_reveal_line(subject: Subject) -> str:
    return f"<b>{_escape_html(subject.name)}</b>: <i>{_escape_html(subject.homework)}</i>"


def fmt_digest(
    subjects: Sequence[Optional[str]],
    rows: Sequence[Subject],
    header: str = DIGEST_HEADER,
) -> str:
    """Header line followed by one line per scheduled subject with its homework."""
    scheduled = [s for s in subjects if s]
    if not scheduled:
        logger.info("No classes scheduled, digest has no subject lines")
        return header

    lines: List[str] = [header]
    for name in scheduled:
        row = _find_first(rows, name)
        if row is None:
            logger.warning(f"Scheduled subject '{name}' has no homework row, skipped")
            continue
        lines.append(fmt_reveal_line(row))
    return "\n".join(lines)


def keyboard_columns(count: int) -> int:
    return max(1, math.ceil(count / 4))


def build_subject_keyboard(rows: Sequence[Subject]) -> InlineKeyboardMarkup:
    columns = keyboard_columns(len(rows))
    buttons = [InlineKeyboardButton(r.label, callback_data=r.label) for r in rows]
    layout = [buttons[i:i + columns] for i in range(0, len(buttons), columns)]
    return InlineKeyboardMarkup(layout)
