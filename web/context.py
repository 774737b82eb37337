"""Request-scoped access to the configured gate, settings and record service."""

from __future__ import annotations

from typing import Any, Dict, Mapping

from flask import current_app, g, request

from core.auth_gate import AuthGate
from core.errors import InvalidPayload
from core.records import RecordService
from core.row_store import RowStore
from core.sheets_client import build_client
from settings import AppSettings

EXTENSION_KEY = "koperasi"


def _state() -> Dict[str, Any]:
    return current_app.extensions[EXTENSION_KEY]


def current_settings() -> AppSettings:
    return _state()["settings"]


def current_gate() -> AuthGate:
    return _state()["gate"]


def record_service() -> RecordService:
    """Return the record service for this request, building it on first use.

    Credentials come from the gate, so an OAuth deployment talks to Sheets
    with the caller's own tokens.
    """

    if "record_service" not in g:
        settings = current_settings()
        gate = current_gate()
        cookies = request.cookies
        client = build_client(settings.spreadsheet_id, lambda: gate.sheets_credentials(cookies))
        g.record_service = RecordService(RowStore(client), with_passwords=settings.uses_passwords)
    return g.record_service


def json_body() -> Mapping[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise InvalidPayload("Request body must be a JSON object")
    return payload
