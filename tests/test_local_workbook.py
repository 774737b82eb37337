from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core.local_workbook import LocalWorkbookError, LocalWorkbookService, WorksheetNotFoundError


def _service(tmp_path: Path, sheets=None) -> LocalWorkbookService:
    path = tmp_path / "book.json"
    if sheets is not None:
        path.write_text(json.dumps({"sheets": sheets}), encoding="utf-8")
    return LocalWorkbookService(path)


def test_missing_file_reports_no_worksheets(tmp_path: Path) -> None:
    service = _service(tmp_path)

    response = service.spreadsheets().get(spreadsheetId="ignored").execute()

    assert response["sheets"] == []


def test_add_sheet_assigns_positional_ids_and_rejects_duplicates(tmp_path: Path) -> None:
    service = _service(tmp_path)
    body = {"requests": [{"addSheet": {"properties": {"title": "A"}}}, {"addSheet": {"properties": {"title": "B"}}}]}

    service.spreadsheets().batchUpdate(spreadsheetId="x", body=body).execute()
    described = service.spreadsheets().get(spreadsheetId="x").execute()

    assert [sheet["properties"] for sheet in described["sheets"]] == [
        {"sheetId": 0, "title": "A"},
        {"sheetId": 1, "title": "B"},
    ]
    with pytest.raises(LocalWorkbookError):
        service.spreadsheets().batchUpdate(
            spreadsheetId="x", body={"requests": [{"addSheet": {"properties": {"title": "A"}}}]}
        ).execute()


def test_get_trims_trailing_blanks_and_limits_columns(tmp_path: Path) -> None:
    service = _service(tmp_path, {"People": [["ID", "Name", ""], ["1", "Ana", ""], ["", "", ""]]})
    values = service.spreadsheets().values()

    full = values.get(spreadsheetId="x", range="'People'!A:Z").execute()
    first = values.get(spreadsheetId="x", range="'People'!A:A").execute()

    assert full["values"] == [["ID", "Name"], ["1", "Ana"]]
    assert first["values"] == [["ID"], ["1"]]


def test_get_unknown_worksheet_raises(tmp_path: Path) -> None:
    service = _service(tmp_path, {"People": []})

    with pytest.raises(WorksheetNotFoundError):
        service.spreadsheets().values().get(spreadsheetId="x", range="'Missing'!A:Z").execute()


def test_update_writes_from_anchor_cell(tmp_path: Path) -> None:
    service = _service(tmp_path, {"People": [["ID", "Name"], ["1", "Ana"]]})
    values = service.spreadsheets().values()

    values.update(spreadsheetId="x", range="'People'!A2", valueInputOption="RAW", body={"values": [["1", "Ani"]]}).execute()
    values.update(spreadsheetId="x", range="'People'!B4", valueInputOption="RAW", body={"values": [["Late"]]}).execute()

    stored = json.loads(service.path.read_text(encoding="utf-8"))["sheets"]["People"]
    assert stored[1] == ["1", "Ani"]
    assert stored[3] == ["", "Late"]


def test_append_goes_after_last_non_empty_row(tmp_path: Path) -> None:
    service = _service(tmp_path, {"People": [["ID", "Name"], ["1", "Ana"], ["", ""]]})
    values = service.spreadsheets().values()

    values.append(spreadsheetId="x", range="'People'!A:A", valueInputOption="RAW", body={"values": [["2", "Budi"]]}).execute()

    result = values.get(spreadsheetId="x", range="'People'!A:Z").execute()
    assert result["values"] == [["ID", "Name"], ["1", "Ana"], ["2", "Budi"]]


def test_delete_dimension_shifts_rows_up(tmp_path: Path) -> None:
    service = _service(tmp_path, {"People": [["ID"], ["1"], ["2"], ["3"]]})
    body = {
        "requests": [
            {"deleteDimension": {"range": {"sheetId": 0, "dimension": "ROWS", "startIndex": 2, "endIndex": 3}}}
        ]
    }

    service.spreadsheets().batchUpdate(spreadsheetId="x", body=body).execute()

    result = service.spreadsheets().values().get(spreadsheetId="x", range="'People'!A:A").execute()
    assert result["values"] == [["ID"], ["1"], ["3"]]


def test_values_api_exposes_only_row_primitives(tmp_path: Path) -> None:
    values = _service(tmp_path, {"People": []}).spreadsheets().values()

    assert callable(values.get) and callable(values.update) and callable(values.append)
    assert not hasattr(values, "batchUpdate")
