from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import gspread
from google.oauth2.service_account import Credentials
from gspread.utils import ValueRenderOption, a1_range_to_grid_range, a1_to_rowcol, rowcol_to_a1

from .config import logger
from .state import SheetRangeError


SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class CellRange:
    """Snapshot of one loaded A1 range of a worksheet.

    Cells are addressed with absolute 0-based (row, col) indices, so a range
    loaded as ``A2:H15`` answers ``get_cell(1, 0)`` with the value of ``A2``.
    Writes are kept locally until :meth:`SheetsClient.save` flushes them.
    """

    def __init__(self, title: str, a1_range: str, values: List[List[Any]]):
        grid = a1_range_to_grid_range(a1_range)
        self.title = title
        self.a1_range = a1_range
        self.start_row: int = grid.get("startRowIndex", 0)
        self.end_row: int = grid["endRowIndex"]
        self.start_col: int = grid.get("startColumnIndex", 0)
        self.end_col: int = grid["endColumnIndex"]
        self._values = [list(r) for r in values]
        self._dirty: Dict[Tuple[int, int], Any] = {}

    def _check(self, row: int, col: int) -> None:
        if not (self.start_row <= row < self.end_row and self.start_col <= col < self.end_col):
            raise SheetRangeError(
                f"Cell ({row}, {col}) is outside the loaded range {self.title}!{self.a1_range}"
            )

    def get_cell(self, row: int, col: int) -> Any:
        self._check(row, col)
        if (row, col) in self._dirty:
            return self._dirty[(row, col)]
        r, c = row - self.start_row, col - self.start_col
        if r >= len(self._values) or c >= len(self._values[r]):
            return None
        value = self._values[r][c]
        return None if value == "" else value

    def get_cell_by_a1(self, label: str) -> Any:
        row, col = a1_to_rowcol(label)
        return self.get_cell(row - 1, col - 1)

    def set_cell(self, row: int, col: int, value: Any) -> None:
        self._check(row, col)
        self._dirty[(row, col)] = value

    def set_cell_by_a1(self, label: str, value: Any) -> None:
        row, col = a1_to_rowcol(label)
        self.set_cell(row - 1, col - 1, value)

    @property
    def dirty(self) -> bool:
        return bool(self._dirty)

    def pending_updates(self) -> List[Dict[str, Any]]:
        """Batch payload for ``Worksheet.batch_update``."""
        return [
            {"range": rowcol_to_a1(row + 1, col + 1), "values": [[value]]}
            for (row, col), value in sorted(self._dirty.items())
        ]

    def mark_saved(self) -> None:
        for (row, col), value in self._dirty.items():
            r, c = row - self.start_row, col - self.start_col
            while len(self._values) <= r:
                self._values.append([])
            line = self._values[r]
            while len(line) <= c:
                line.append("")
            line[c] = value
        self._dirty.clear()


class SheetsClient:
    """Service-account access to one spreadsheet.

    gspread is blocking, so every remote call runs in a worker thread.
    """

    def __init__(self, service_account_email: str, private_key: str, spreadsheet_id: str):
        self.service_account_email = service_account_email
        self._private_key = private_key
        self.spreadsheet_id = spreadsheet_id
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: Dict[str, gspread.Worksheet] = {}

    def _credentials(self) -> Credentials:
        info = {
            "type": "service_account",
            "client_email": self.service_account_email,
            "private_key": self._private_key,
            "token_uri": TOKEN_URI,
        }
        return Credentials.from_service_account_info(info, scopes=SCOPES)

    def _open(self) -> gspread.Spreadsheet:
        if self._spreadsheet is None:
            client = gspread.authorize(self._credentials())
            self._spreadsheet = client.open_by_key(self.spreadsheet_id)
            logger.info(f"Opened spreadsheet '{self._spreadsheet.title}' as {self.service_account_email}")
        return self._spreadsheet

    def _worksheet(self, title: str) -> gspread.Worksheet:
        if title not in self._worksheets:
            self._worksheets[title] = self._open().worksheet(title)
        return self._worksheets[title]

    def _fetch(self, title: str, a1_range: str) -> List[List[Any]]:
        return self._worksheet(title).get(a1_range, value_render_option=ValueRenderOption.unformatted)

    async def load_range(self, title: str, a1_range: str) -> CellRange:
        logger.debug(f"Loading {title}!{a1_range}")
        values = await asyncio.to_thread(self._fetch, title, a1_range)
        return CellRange(title, a1_range, values)

    async def save(self, cells: CellRange) -> int:
        """Write the locally changed cells back. Returns the number of cells written."""
        updates = cells.pending_updates()
        if not updates:
            return 0
        worksheet = self._worksheet(cells.title)
        await asyncio.to_thread(worksheet.batch_update, updates)
        cells.mark_saved()
        logger.debug(f"Saved {len(updates)} cells to {cells.title}")
        return len(updates)

    async def worksheet_titles(self) -> List[str]:
        spreadsheet = await asyncio.to_thread(self._open)
        worksheets = await asyncio.to_thread(spreadsheet.worksheets)
        return [ws.title for ws in worksheets]
