"""Flask application factory for the koperasi dashboard backend."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from flask import Flask, abort, jsonify, send_from_directory
from werkzeug.exceptions import HTTPException

from core.auth_gate import AuthGate, create_auth_gate
from core.errors import KoperasiError
from settings import AppSettings, load_app_settings
from web.auth_routes import auth_bp
from web.context import EXTENSION_KEY
from web.sheets_routes import sheets_bp

logger = logging.getLogger(__name__)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(KoperasiError)
    def _koperasi_error(exc: KoperasiError):
        if exc.status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc)
        else:
            logger.info("%s: %s", type(exc).__name__, exc)
        return jsonify({"error": str(exc)}), exc.status_code

    @app.errorhandler(Exception)
    def _unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            if exc.code is None or exc.code < 400:
                return exc
            return jsonify({"error": exc.description}), exc.code
        logger.exception("Unhandled error")
        return jsonify({"error": str(exc)}), 500


def _register_static(app: Flask, static_dir: Path) -> None:
    """Serve the built dashboard bundle with an ``index.html`` fallback."""

    @app.get("/", defaults={"path": ""})
    @app.get("/<path:path>")
    def _dashboard(path: str):
        if path.startswith("api/"):
            abort(404)
        if not static_dir.is_dir():
            abort(404)
        if path and (static_dir / path).is_file():
            return send_from_directory(static_dir, path)
        return send_from_directory(static_dir, "index.html")


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    gate: Optional[AuthGate] = None,
    flow_factory: Optional[Callable] = None,
) -> Flask:
    """Create and configure the Flask application."""

    settings = settings or load_app_settings()
    gate = gate or create_auth_gate(settings, flow_factory=flow_factory)

    app = Flask(__name__, static_folder=None)
    app.json.sort_keys = False
    app.extensions[EXTENSION_KEY] = {"settings": settings, "gate": gate}

    app.register_blueprint(auth_bp)
    app.register_blueprint(sheets_bp)
    _register_error_handlers(app)
    _register_static(app, Path(settings.static_dir).expanduser().resolve())

    logger.info(
        "Koperasi backend configured (auth mode: %s, spreadsheet: %s)",
        gate.mode,
        settings.masked_spreadsheet_id(),
    )
    return app


__all__ = ["create_app"]
