"""Application configuration helpers for the koperasi backend."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

AUTH_MODE_SESSION = "session"
AUTH_MODE_OAUTH = "oauth"
AUTH_MODES = (AUTH_MODE_SESSION, AUTH_MODE_OAUTH)

DEFAULT_SPREADSHEET_ID = "1x75Ms8xPARMsz-dJGm7Hz6g8QvHJCZrRNQrf_X-HYZM"
DEFAULT_REDIRECT_URI = "http://localhost:3000/auth/callback"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_STATIC_DIR = "dist"

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


@dataclass
class AppSettings:
    spreadsheet_id: str = DEFAULT_SPREADSHEET_ID
    service_account_email: str = ""
    private_key: str = ""
    service_account_file: str = ""
    auth_mode: str = AUTH_MODE_SESSION
    google_client_id: str = ""
    google_client_secret: str = ""
    redirect_uri: str = DEFAULT_REDIRECT_URI
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cookie_secure: bool = True
    enforce_roles: bool = False
    static_dir: str = DEFAULT_STATIC_DIR
    log_level: str = "INFO"

    @property
    def uses_passwords(self) -> bool:
        return self.auth_mode == AUTH_MODE_SESSION

    def masked_spreadsheet_id(self) -> str:
        value = self.spreadsheet_id
        if len(value) <= 12:
            return value
        return f"{value[:6]}...{value[-6:]}"


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning("Ignoring unrecognised boolean value %r", value)
    return default


def _parse_port(value: Optional[str]) -> int:
    if not value:
        return DEFAULT_PORT
    try:
        port = int(value)
    except ValueError:
        logger.warning("Invalid PORT %r, using %s", value, DEFAULT_PORT)
        return DEFAULT_PORT
    return port if 0 < port < 65536 else DEFAULT_PORT


def _coerce_auth_mode(value: Optional[str]) -> str:
    mode = (value or AUTH_MODE_SESSION).strip().lower()
    if mode not in AUTH_MODES:
        logger.warning("Unknown KOPERASI_AUTH_MODE %r, falling back to %s", value, AUTH_MODE_SESSION)
        return AUTH_MODE_SESSION
    return mode


def load_app_settings(environ: Optional[Mapping[str, str]] = None, *, dotenv: bool = True) -> AppSettings:
    """Build :class:`AppSettings` from ``environ`` (``os.environ`` by default).

    When ``dotenv`` is true a ``.env`` file in the working directory is loaded
    first; variables already present in the environment win.
    """

    if environ is None:
        if dotenv:
            load_dotenv()
        environ = os.environ

    return AppSettings(
        spreadsheet_id=(environ.get("SPREADSHEET_ID") or DEFAULT_SPREADSHEET_ID).strip(),
        service_account_email=environ.get("GOOGLE_SERVICE_ACCOUNT_EMAIL", "").strip(),
        private_key=environ.get("GOOGLE_PRIVATE_KEY", ""),
        service_account_file=environ.get("GOOGLE_SERVICE_ACCOUNT_FILE", "").strip(),
        auth_mode=_coerce_auth_mode(environ.get("KOPERASI_AUTH_MODE")),
        google_client_id=environ.get("GOOGLE_CLIENT_ID", "").strip(),
        google_client_secret=environ.get("GOOGLE_CLIENT_SECRET", "").strip(),
        redirect_uri=(environ.get("GOOGLE_REDIRECT_URI") or DEFAULT_REDIRECT_URI).strip(),
        host=(environ.get("KOPERASI_HOST") or DEFAULT_HOST).strip(),
        port=_parse_port(environ.get("PORT")),
        cookie_secure=_parse_bool(environ.get("KOPERASI_COOKIE_SECURE"), True),
        enforce_roles=_parse_bool(environ.get("KOPERASI_ENFORCE_ROLES"), False),
        static_dir=(environ.get("KOPERASI_STATIC_DIR") or DEFAULT_STATIC_DIR).strip(),
        log_level=(environ.get("KOPERASI_LOG_LEVEL") or "INFO").strip().upper(),
    )


__all__ = [
    "AUTH_MODES",
    "AUTH_MODE_OAUTH",
    "AUTH_MODE_SESSION",
    "AppSettings",
    "DEFAULT_SPREADSHEET_ID",
    "load_app_settings",
]
