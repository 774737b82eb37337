"""Error types shared by the koperasi backend.

Every error carries the HTTP status the web layer answers with, so route
handlers can let them propagate and rely on the registered error handlers.
"""

from __future__ import annotations

__all__ = [
    "KoperasiError",
    "ConfigurationMissing",
    "InvalidCredentials",
    "NotAuthenticated",
    "Forbidden",
    "NotFound",
    "OperationNotAllowed",
    "InvalidPayload",
    "UpstreamFailure",
]


class KoperasiError(Exception):
    """Base error raised when a koperasi operation cannot complete."""

    status_code = 500


class ConfigurationMissing(KoperasiError):
    """Raised when credentials or client settings are not configured."""


class InvalidCredentials(KoperasiError):
    """Raised when a login does not match any user row."""

    status_code = 401


class NotAuthenticated(KoperasiError):
    """Raised when a request needs a session or stored tokens and has none."""

    status_code = 401


class Forbidden(KoperasiError):
    """Raised when the signed-in role may not write a collection."""

    status_code = 403


class NotFound(KoperasiError):
    """Raised for unknown collections, worksheets or record ids."""

    status_code = 404


class OperationNotAllowed(KoperasiError):
    """Raised when updating or deleting rows of an append-only collection."""

    status_code = 405


class InvalidPayload(KoperasiError):
    """Raised when a request body does not carry the expected values."""

    status_code = 400


class UpstreamFailure(KoperasiError):
    """Raised when the spreadsheet service call itself failed."""
