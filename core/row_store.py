"""Row store adapter on top of a Google Sheets worksheet.

Each collection lives in one worksheet whose first row is the header. The
adapter turns the "two-dimensional array of strings" returned by the Sheets
API into field-to-value mappings and computes the positional ranges used for
update and delete:

``list``
    Read every row and zip the data rows against the header.

``find_row_index``
    Linear scan of the first (identifier) column, returning the 0-based
    offset of the first matching data row.

``append`` / ``replace`` / ``delete_row``
    Append after the last row, overwrite a full row, or remove a row. The
    latter two take 1-based sheet positions; use :func:`sheet_position` to
    convert a data-row offset. Deleting shifts later rows up, so any
    previously computed index is stale afterwards.

Nothing is cached: the identifier column is re-read for every lookup.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from core.errors import NotFound
from core.sheets_client import (
    SheetsClient,
    WorksheetMissingError,
    a1_cell,
    a1_columns_range,
    a1_first_column_range,
)

logger = logging.getLogger(__name__)

HEADER_ROWS = 1


class RowNotFoundError(NotFound):
    """Raised when no data row carries the requested identifier."""


def sheet_position(offset: int) -> int:
    """Return the 1-based sheet row of the data row at ``offset``."""

    if offset < 0:
        raise ValueError("Data-row offset must be >= 0")
    return offset + HEADER_ROWS + 1


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _row_for_sheet(values: Sequence[Any]) -> List[str]:
    return [_cell_text(value) for value in values]


def rows_from_values(values: Sequence[Sequence[str]]) -> List[Dict[str, str]]:
    """Zip every data row of ``values`` against its header row."""

    if not values:
        return []
    headers = list(values[0])
    rows: List[Dict[str, str]] = []
    for raw in values[1:]:
        row: Dict[str, str] = {}
        for index, header in enumerate(headers):
            row[header] = raw[index] if index < len(raw) else ""
        rows.append(row)
    return rows


class RowStore:
    """Positional row access for the worksheets of one spreadsheet."""

    def __init__(self, client: SheetsClient, *, columns: int = 26) -> None:
        self._client = client
        self._columns = columns

    @property
    def client(self) -> SheetsClient:
        return self._client

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list(self, title: str) -> List[Dict[str, str]]:
        values = self._client.get_values(a1_columns_range(title, columns=self._columns))
        return rows_from_values(values)

    def header(self, title: str) -> List[str]:
        values = self._client.get_values(a1_columns_range(title, columns=self._columns))
        return list(values[0]) if values else []

    def find_row_index(self, title: str, id_value: str) -> int:
        column = self._client.get_values(a1_first_column_range(title))
        for offset, row in enumerate(column[HEADER_ROWS:]):
            if row and row[0] == id_value:
                return offset
        raise RowNotFoundError(f"Data not found: {title}/{id_value}")

    def titles(self) -> List[str]:
        return list(self._client.sheet_ids().keys())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def append(self, title: str, values: Sequence[Any]) -> None:
        self._client.append_values(a1_first_column_range(title), [_row_for_sheet(values)])

    def replace(self, title: str, row_index: int, values: Sequence[Any]) -> None:
        self._client.update_values(a1_cell(title, row_index), [_row_for_sheet(values)])

    def delete_row(self, title: str, row_index: int) -> None:
        if row_index <= HEADER_ROWS:
            raise ValueError("The header row cannot be deleted")
        sheet_ids = self._client.sheet_ids()
        if title not in sheet_ids:
            raise WorksheetMissingError(f"Sheet not found: {title}")
        self._client.delete_rows(sheet_ids[title], row_index - 1, row_index)
        logger.debug("Deleted row %s of %s", row_index, title)

    def add_worksheets(self, titles: Sequence[str]) -> None:
        self._client.add_sheets(list(titles))

    def write_header(self, title: str, headers: Sequence[str]) -> None:
        self._client.update_values(a1_cell(title, 1), [list(headers)])

    def write_block(self, title: str, rows: Sequence[Sequence[Any]], *, start_row: int = HEADER_ROWS + 1) -> None:
        if not rows:
            return
        self._client.update_values(a1_cell(title, start_row), [_row_for_sheet(row) for row in rows])


__all__ = [
    "HEADER_ROWS",
    "RowNotFoundError",
    "RowStore",
    "rows_from_values",
    "sheet_position",
]
