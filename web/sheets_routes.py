"""Spreadsheet-backed collection routes and the dashboard summary."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from flask import Blueprint, jsonify, request

from core import permissions
from core.errors import InvalidPayload
from core.records import USERS, RecordValues
from web.context import current_gate, current_settings, json_body, record_service

logger = logging.getLogger(__name__)

sheets_bp = Blueprint("sheets", __name__)

_HIDDEN_FIELDS = {USERS.name: ("Password",)}


def _require_session() -> None:
    current_gate().require_authenticated(request.cookies)


def _require_write(collection: str) -> None:
    if not current_settings().enforce_roles:
        return
    user = current_gate().current_user(request.cookies)
    if user is not None:
        permissions.require_write(user.get("role"), collection)


def _record_values() -> RecordValues:
    payload = json_body()
    if "values" in payload:
        return payload["values"]
    if isinstance(payload.get("fields"), dict):
        return payload["fields"]
    raise InvalidPayload("Request body must contain 'values' or 'fields'")


def _public_rows(collection: str, rows: List[Dict[str, str]]) -> List[Dict[str, str]]:
    hidden = _HIDDEN_FIELDS.get(collection)
    if not hidden:
        return rows
    return [{key: value for key, value in row.items() if key not in hidden} for row in rows]


@sheets_bp.get("/api/sheets/init")
def init_sheets():
    created = record_service().ensure_schema()
    if created:
        logger.info("Initialised worksheets %s", ", ".join(created))
    return jsonify({"success": True, "message": "Sheets initialized"})


@sheets_bp.get("/api/sheets/health")
def health():
    record_service().ping()
    return jsonify({"success": True})


@sheets_bp.get("/api/sheets/data/<collection>")
def list_records(collection: str):
    _require_session()
    service = record_service()
    name = service.collection(collection).name
    return jsonify(_public_rows(name, service.list(name)))


@sheets_bp.post("/api/sheets/data/<collection>")
def create_record(collection: str):
    _require_session()
    service = record_service()
    name = service.collection(collection).name
    _require_write(name)
    row = service.create(name, _record_values())
    result: Dict[str, Any] = {"success": True}
    if service.collection(name).id_field and row:
        result["id"] = row[0]
    return jsonify(result)


@sheets_bp.put("/api/sheets/data/<collection>/<record_id>")
def update_record(collection: str, record_id: str):
    _require_session()
    service = record_service()
    name = service.collection(collection).name
    _require_write(name)
    service.update_by_id(name, record_id, _record_values())
    return jsonify({"success": True})


@sheets_bp.delete("/api/sheets/data/<collection>/<record_id>")
def delete_record(collection: str, record_id: str):
    _require_session()
    service = record_service()
    name = service.collection(collection).name
    _require_write(name)
    service.delete_by_id(name, record_id)
    return jsonify({"success": True})


@sheets_bp.post("/api/sheets/seed")
def seed():
    """Overwrite rows 2 onward of every collection with the demo records.

    This is destructive, and it resets the demo users' passwords. An empty
    spreadsheet can be seeded anonymously; once Users holds rows a session
    (and, with role enforcement, write access to Users) is required.
    """

    service = record_service()
    if service.has_rows(USERS.name):
        _require_session()
        _require_write(USERS.name)
    updated = service.seed_demo_data()
    return jsonify(
        {
            "success": True,
            "message": "Data sampel berhasil diisi!",
            "debug": {
                "spreadsheetId": current_settings().masked_spreadsheet_id(),
                "sheetsUpdated": updated,
            },
        }
    )


@sheets_bp.get("/api/dashboard/summary")
def dashboard_summary():
    _require_session()
    return jsonify(record_service().summary())
