"""Google Sheets client helpers with A1 range handling.

This module centralises all direct interactions with the Google Sheets API
used by the koperasi backend. It provides a small surface area the rest of
the application can rely on without needing to know about HTTP requests or
googleapiclient internals:

* Normalising worksheet titles and A1 ranges. Titles are always quoted
  according to the Sheets A1 rules and column references are calculated with
  a dedicated helper.
* Wrapping the five primitives the backend needs (spreadsheet metadata,
  structural ``batchUpdate``, ``values.get``, ``values.update`` and
  ``values.append``).
* Providing a clean failure surface. All public entry points raise
  :class:`SheetsClientError` subclasses, which are also koperasi errors, so
  the web layer can answer with the right status.

The client is constructed per request with whatever credentials the active
auth gate supplies. A spreadsheet id that points to a ``.json`` file selects
:class:`core.local_workbook.LocalWorkbookService` instead of the REST API.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List, Mapping, MutableSequence, Sequence

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from core.errors import NotFound, UpstreamFailure
from core.local_workbook import LocalWorkbookError, LocalWorkbookService, WorksheetNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = 26
VALUE_INPUT_OPTION = "RAW"


class SheetsClientError(UpstreamFailure):
    """Base error raised for Sheets API failures."""


class SheetsApiResponseError(SheetsClientError):
    """Raised when the Google API returns an error response."""


class WorksheetMissingError(NotFound):
    """Raised when a range or sheet id names a worksheet that does not exist."""


def _normalise_title(title: str) -> str:
    """Return a worksheet title quoted according to A1 notation rules."""

    safe = (title or "").strip()
    if not safe:
        raise WorksheetMissingError("Worksheet title must not be empty.")
    safe = safe.replace("'", "''")
    return f"'{safe}'"


def column_letter(index: int) -> str:
    if index < 1:
        raise ValueError("Column index must be >= 1")
    letters: MutableSequence[str] = []
    while index:
        index, remainder = divmod(index - 1, 26)
        letters.append(chr(65 + remainder))
    return "".join(reversed(letters))


def a1_columns_range(title: str, *, columns: int = DEFAULT_COLUMNS) -> str:
    """Return an open-ended A1 range spanning ``columns`` columns of ``title``."""

    last_column = column_letter(max(1, columns))
    return f"{_normalise_title(title)}!A:{last_column}"


def a1_first_column_range(title: str) -> str:
    """Return the A1 range of the first (identifier) column of ``title``."""

    return f"{_normalise_title(title)}!A:A"


def a1_cell(title: str, row_index: int, column: int = 1) -> str:
    """Return the A1 reference of a single anchor cell on ``title``."""

    if row_index < 1:
        raise ValueError("Row index must be >= 1")
    return f"{_normalise_title(title)}!{column_letter(column)}{row_index}"


def _is_missing_worksheet(exc: HttpError) -> bool:
    status = getattr(getattr(exc, "resp", None), "status", None)
    return str(status) == "400" and "Unable to parse range" in str(exc)


class SheetsClient:
    """Concrete helper that speaks to Google Sheets using the REST API."""

    def __init__(self, spreadsheet_id: str, *, service) -> None:
        self._spreadsheet_id = spreadsheet_id
        self._service = service

    @property
    def spreadsheet_id(self) -> str:
        return self._spreadsheet_id

    def _execute(self, request, description: str):
        try:
            return request.execute()
        except HttpError as exc:
            if _is_missing_worksheet(exc):
                raise WorksheetMissingError(f"Sheet not found ({description})") from exc
            logger.error("Sheets API call failed: %s: %s", description, exc)
            raise SheetsApiResponseError(str(exc)) from exc
        except WorksheetNotFoundError as exc:
            raise WorksheetMissingError(f"Sheet not found ({description})") from exc
        except LocalWorkbookError as exc:
            logger.error("Local workbook call failed: %s: %s", description, exc)
            raise SheetsApiResponseError(str(exc)) from exc
        except OSError as exc:
            logger.error("Transport failure during %s: %s", description, exc)
            raise SheetsClientError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Spreadsheet structure
    # ------------------------------------------------------------------
    def health_check(self) -> None:
        """Perform a lightweight check to confirm the spreadsheet is reachable."""

        self._execute(
            self._service.spreadsheets().get(spreadsheetId=self._spreadsheet_id, includeGridData=False),
            "health check",
        )

    def sheet_ids(self) -> Dict[str, int]:
        """Return a mapping of worksheet title to numeric ``sheetId``."""

        response = self._execute(
            self._service.spreadsheets().get(spreadsheetId=self._spreadsheet_id, includeGridData=False),
            "spreadsheet metadata",
        )
        result: Dict[str, int] = {}
        for sheet in response.get("sheets", []) or []:
            properties = sheet.get("properties", {}) if isinstance(sheet, Mapping) else {}
            title = properties.get("title")
            if isinstance(title, str):
                result[title] = int(properties.get("sheetId", 0))
        return result

    def add_sheets(self, titles: Sequence[str]) -> None:
        """Create one worksheet per entry of ``titles`` in a single request."""

        if not titles:
            return
        body = {"requests": [{"addSheet": {"properties": {"title": title}}} for title in titles]}
        self._execute(
            self._service.spreadsheets().batchUpdate(spreadsheetId=self._spreadsheet_id, body=body),
            f"add sheets {', '.join(titles)}",
        )

    def delete_rows(self, sheet_id: int, start_index: int, end_index: int) -> None:
        """Delete rows ``[start_index, end_index)`` (0-based) of ``sheet_id``."""

        body = {
            "requests": [
                {
                    "deleteDimension": {
                        "range": {
                            "sheetId": sheet_id,
                            "dimension": "ROWS",
                            "startIndex": start_index,
                            "endIndex": end_index,
                        }
                    }
                }
            ]
        }
        self._execute(
            self._service.spreadsheets().batchUpdate(spreadsheetId=self._spreadsheet_id, body=body),
            f"delete rows {start_index}:{end_index} of sheet {sheet_id}",
        )

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------
    def get_values(self, range_spec: str) -> List[List[str]]:
        response = self._execute(
            self._service.spreadsheets()
            .values()
            .get(spreadsheetId=self._spreadsheet_id, range=range_spec),
            f"read {range_spec}",
        )
        values = response.get("values", []) if isinstance(response, Mapping) else []
        return [["" if cell is None else str(cell) for cell in row] for row in values]

    def update_values(self, range_spec: str, rows: Sequence[Sequence[str]]) -> None:
        body = {"values": [list(row) for row in rows]}
        self._execute(
            self._service.spreadsheets()
            .values()
            .update(
                spreadsheetId=self._spreadsheet_id,
                range=range_spec,
                valueInputOption=VALUE_INPUT_OPTION,
                body=body,
            ),
            f"write {range_spec}",
        )

    def append_values(self, range_spec: str, rows: Sequence[Sequence[str]]) -> None:
        body = {"values": [list(row) for row in rows]}
        self._execute(
            self._service.spreadsheets()
            .values()
            .append(
                spreadsheetId=self._spreadsheet_id,
                range=range_spec,
                valueInputOption=VALUE_INPUT_OPTION,
                body=body,
            ),
            f"append {range_spec}",
        )


def is_local_workbook(spreadsheet_id: str) -> bool:
    return Path(spreadsheet_id).suffix.lower() == ".json"


def _normalise_path(candidate: str) -> Path:
    path = Path(candidate).expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path
    return path


def build_client(spreadsheet_id: str, credentials_loader: Callable[[], object]) -> SheetsClient:
    """Factory helper used by the web layer to construct a client.

    ``credentials_loader`` is only invoked when the REST API is targeted, so
    the local workbook works without any Google configuration.
    """

    spreadsheet_id = (spreadsheet_id or "").strip()
    if is_local_workbook(spreadsheet_id):
        path = _normalise_path(spreadsheet_id)
        return SheetsClient(str(path), service=LocalWorkbookService(path))

    credentials = credentials_loader()
    service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
    return SheetsClient(spreadsheet_id, service=service)


__all__ = [
    "SheetsClient",
    "SheetsApiResponseError",
    "SheetsClientError",
    "WorksheetMissingError",
    "a1_cell",
    "a1_columns_range",
    "a1_first_column_range",
    "build_client",
    "column_letter",
    "is_local_workbook",
]
