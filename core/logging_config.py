"""Application-wide logging configuration utilities."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from core import app_paths

_LOG_PATH: Optional[Path] = None
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: Union[int, str] = logging.INFO, *, log_file: Optional[Path] = None) -> Path:
    """Configure logging to write to the koperasi log file and the console.

    Parameters
    ----------
    level:
        The minimum logging level for the root logger, as a number or a level
        name such as ``"DEBUG"``.
    log_file:
        Overrides the default ``koperasi.log`` location inside the
        application data directory.

    Returns
    -------
    pathlib.Path
        The path to the log file.
    """

    global _LOG_PATH

    if _LOG_PATH is not None:
        return _LOG_PATH

    numeric_level = _coerce_level(level)
    log_path = Path(log_file) if log_file else app_paths.log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        root_logger.setLevel(numeric_level)
    else:
        root_logger.setLevel(min(root_logger.level, numeric_level))

    formatter = logging.Formatter(_FORMAT)
    already_configured = any(
        isinstance(handler, logging.FileHandler)
        and getattr(handler, "baseFilename", None) == str(log_path.resolve())
        for handler in root_logger.handlers
    )
    if not already_configured:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    _LOG_PATH = log_path
    root_logger.debug("Logging configured. Writing to %s", log_path)
    return log_path

