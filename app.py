"""Command line entry point for the koperasi dashboard backend."""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from core.logging_config import configure_logging
from settings import load_app_settings
from web.server import create_app

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the koperasi dashboard backend.")
    parser.add_argument("--host", help="Interface to bind (default: KOPERASI_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Port to listen on (default: PORT or 3000)")
    parser.add_argument("--debug", action="store_true", help="Enable the Flask debugger and reloader")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    settings = load_app_settings()
    log_path = configure_logging("DEBUG" if args.debug else settings.log_level)
    logger.info("Writing logs to %s", log_path)

    app = create_app(settings)
    host = args.host or settings.host
    port = args.port or settings.port
    logger.info("Server running on http://%s:%s", host, port)
    app.run(host=host, port=port, debug=args.debug)


if __name__ == "__main__":
    main()
