"""Lightweight workbook service backed by a JSON file simulating a spreadsheet.

The classes here implement the subset of the Sheets v4 discovery client the
koperasi backend calls (``spreadsheets().get``, ``spreadsheets().batchUpdate``
and ``spreadsheets().values()`` ``get``/``update``/``append``)
so that :mod:`core.sheets_client` can run unchanged against a local file.
Worksheets are stored as ``{"sheets": {title: [[cell, ...], ...]}}``; a
sheet's ``sheetId`` is its position in that mapping.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple


class LocalWorkbookError(Exception):
    """Raised when a request cannot be applied to the local workbook."""


class WorksheetNotFoundError(LocalWorkbookError):
    """Raised when a range names a worksheet that does not exist."""


@dataclass(frozen=True)
class _CellRef:
    row: Optional[int]
    column: Optional[int]


class _LocalRequest:
    def __init__(self, callback: Callable[[], Mapping[str, object]]) -> None:
        self._callback = callback

    def execute(self) -> Mapping[str, object]:
        return self._callback()


class _WorkbookFile:
    """Load/save helper shared by the spreadsheet and values proxies."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> Dict[str, List[List[str]]]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
        sheets = payload.get("sheets", {})
        return {title: [[str(cell) for cell in row] for row in rows] for title, rows in sheets.items()}

    def save(self, sheets: Mapping[str, Sequence[Sequence[str]]]) -> None:
        if self.path.parent:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {title: [list(row) for row in rows] for title, rows in sheets.items()}
        with open(self.path, "w", encoding="utf-8") as handle:
            json.dump({"sheets": payload}, handle, indent=2, ensure_ascii=False)

    def worksheet(self, sheets: Mapping[str, List[List[str]]], range_spec: str) -> Tuple[str, _CellRef, _CellRef]:
        title, start, end = _parse_range(range_spec)
        if title not in sheets:
            raise WorksheetNotFoundError(f"Unable to parse range: {range_spec}")
        return title, start, end


class LocalValuesApi:
    def __init__(self, workbook: _WorkbookFile) -> None:
        self._workbook = workbook

    def get(self, spreadsheetId: str, range: str, **_: object) -> _LocalRequest:  # noqa: N803 - API compatibility
        return _LocalRequest(lambda: self._handle_get(range))

    def update(  # noqa: D401 - API compatibility
        self,
        spreadsheetId: str,  # noqa: N803
        range: str,
        valueInputOption: str = "RAW",  # noqa: N803
        body: Optional[Mapping[str, object]] = None,
    ) -> _LocalRequest:
        values = (body or {}).get("values", [])
        return _LocalRequest(lambda: self._handle_update(range, values))

    def append(
        self,
        spreadsheetId: str,  # noqa: N803
        range: str,
        valueInputOption: str = "RAW",  # noqa: N803
        body: Optional[Mapping[str, object]] = None,
        **_: object,
    ) -> _LocalRequest:
        values = (body or {}).get("values", [])
        return _LocalRequest(lambda: self._handle_append(range, values))

    # ------------------------------------------------------------------
    # Range operations
    # ------------------------------------------------------------------
    def _handle_get(self, range_spec: str) -> Mapping[str, object]:
        sheets = self._workbook.load()
        title, start, end = self._workbook.worksheet(sheets, range_spec)
        values = _slice_rows(sheets[title], start, end)
        result: Dict[str, object] = {"range": range_spec, "majorDimension": "ROWS"}
        if values:
            result["values"] = values
        return result

    def _handle_update(self, range_spec: str, values: object) -> Mapping[str, object]:
        sheets = self._workbook.load()
        title, start, _end = self._workbook.worksheet(sheets, range_spec)
        updated = _write_block(sheets[title], start.row or 1, start.column or 1, values)
        self._workbook.save(sheets)
        return {"updatedRange": range_spec, "updatedRows": updated}

    def _handle_append(self, range_spec: str, values: object) -> Mapping[str, object]:
        sheets = self._workbook.load()
        title, start, _end = self._workbook.worksheet(sheets, range_spec)
        rows = sheets[title]
        while rows and all(cell == "" for cell in rows[-1]):
            rows.pop()
        updated = _write_block(rows, len(rows) + 1, start.column or 1, values)
        self._workbook.save(sheets)
        return {"updates": {"updatedRows": updated}}


class LocalSpreadsheetsApi:
    def __init__(self, workbook: _WorkbookFile) -> None:
        self._workbook = workbook

    def values(self) -> LocalValuesApi:  # noqa: D401 - compatibility proxy
        return LocalValuesApi(self._workbook)

    def get(self, spreadsheetId: str, **_: object) -> _LocalRequest:  # noqa: N803 - API compatibility
        def _describe() -> Mapping[str, object]:
            sheets = self._workbook.load()
            return {
                "spreadsheetId": str(self._workbook.path),
                "sheets": [
                    {"properties": {"sheetId": index, "title": title}}
                    for index, title in enumerate(sheets.keys())
                ],
            }

        return _LocalRequest(_describe)

    def batchUpdate(self, spreadsheetId: str, body: Mapping[str, object]) -> _LocalRequest:  # noqa: N802,N803
        return _LocalRequest(lambda: self._handle_batch_update(body))

    def _handle_batch_update(self, body: Mapping[str, object]) -> Mapping[str, object]:
        sheets = self._workbook.load()
        replies: List[Mapping[str, object]] = []
        for request in body.get("requests", []) or []:
            if not isinstance(request, Mapping):
                continue
            if "addSheet" in request:
                replies.append(_add_sheet(sheets, request["addSheet"]))
            elif "deleteDimension" in request:
                _delete_dimension(sheets, request["deleteDimension"])
                replies.append({})
            else:
                raise LocalWorkbookError(f"Unsupported request: {sorted(request)}")
        self._workbook.save(sheets)
        return {"replies": replies}


class LocalWorkbookService:
    """Minimal Sheets API drop-in that stores worksheets in a JSON file."""

    def __init__(self, workbook_path: Path) -> None:
        self._workbook = _WorkbookFile(Path(workbook_path))

    @property
    def path(self) -> Path:
        return self._workbook.path

    def spreadsheets(self) -> LocalSpreadsheetsApi:  # noqa: D401 - compatibility proxy
        return LocalSpreadsheetsApi(self._workbook)


def _add_sheet(sheets: Dict[str, List[List[str]]], payload: object) -> Mapping[str, object]:
    properties = payload.get("properties", {}) if isinstance(payload, Mapping) else {}
    title = properties.get("title") if isinstance(properties, Mapping) else None
    if not isinstance(title, str) or not title:
        raise LocalWorkbookError("addSheet requires a title")
    if title in sheets:
        raise LocalWorkbookError(f'A sheet with the name "{title}" already exists.')
    sheets[title] = []
    return {"addSheet": {"properties": {"sheetId": len(sheets) - 1, "title": title}}}


def _delete_dimension(sheets: Dict[str, List[List[str]]], payload: object) -> None:
    target = payload.get("range", {}) if isinstance(payload, Mapping) else {}
    if target.get("dimension") != "ROWS":
        raise LocalWorkbookError("Only ROWS dimension deletes are supported")
    titles = list(sheets.keys())
    sheet_id = target.get("sheetId")
    if not isinstance(sheet_id, int) or not 0 <= sheet_id < len(titles):
        raise LocalWorkbookError(f"No grid with id: {sheet_id}")
    rows = sheets[titles[sheet_id]]
    start = int(target.get("startIndex", 0))
    end = int(target.get("endIndex", start + 1))
    del rows[start:end]


def _write_block(rows: List[List[str]], start_row: int, start_col: int, values: object) -> int:
    if not isinstance(values, Sequence):
        return 0
    written = 0
    for offset, row in enumerate(values):
        if not isinstance(row, Sequence) or isinstance(row, str):
            continue
        row_index = start_row - 1 + offset
        while len(rows) <= row_index:
            rows.append([])
        target = rows[row_index]
        for col_offset, cell in enumerate(row):
            col_index = start_col - 1 + col_offset
            while len(target) <= col_index:
                target.append("")
            target[col_index] = "" if cell is None else str(cell)
        written += 1
    return written


_A1_RE = re.compile(r"^'?(?P<title>[^']+?)'?(?:!(?P<cells>[A-Za-z0-9:]+))?$")
_CELL_RE = re.compile(r"^(?P<col>[A-Z]+)?(?P<row>\d+)?$")


def _slice_rows(rows: Sequence[Sequence[str]], start: _CellRef, end: _CellRef) -> List[List[str]]:
    if not rows:
        return []
    min_row = max(1, start.row or 1)
    min_col = max(1, start.column or 1)
    max_row = end.row or len(rows)
    max_col = end.column or max((len(row) for row in rows), default=0)
    sliced: List[List[str]] = []
    for row_index in range(min_row - 1, min(max_row, len(rows))):
        row = rows[row_index]
        current: List[str] = []
        for col_index in range(min_col - 1, min(max_col, len(row))):
            current.append(str(row[col_index]))
        while current and current[-1] == "":
            current.pop()
        sliced.append(current)
    while sliced and not sliced[-1]:
        sliced.pop()
    return sliced


def _parse_range(range_spec: str) -> Tuple[str, _CellRef, _CellRef]:
    match = _A1_RE.match(range_spec.strip())
    if not match:
        raise LocalWorkbookError(f"Unable to parse range: {range_spec}")
    title = match.group("title").replace("''", "'")
    cells = match.group("cells")
    if not cells:
        return title, _CellRef(row=None, column=None), _CellRef(row=None, column=None)
    if ":" in cells:
        start_text, end_text = cells.split(":", 1)
    else:
        start_text = end_text = cells
    return title, _parse_cell(start_text), _parse_cell(end_text)


def _parse_cell(value: str) -> _CellRef:
    value = value.strip().upper()
    if not value:
        return _CellRef(row=None, column=None)
    match = _CELL_RE.match(value)
    if not match:
        raise LocalWorkbookError(f"Invalid cell reference: {value!r}")
    column_label = match.group("col")
    row_text = match.group("row")
    column = _column_index(column_label) if column_label else None
    row = int(row_text) if row_text else None
    return _CellRef(row=row, column=column)


def _column_index(label: str) -> int:
    index = 0
    for char in label:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return max(1, index)


__all__ = [
    "LocalWorkbookError",
    "LocalWorkbookService",
    "WorksheetNotFoundError",
]
