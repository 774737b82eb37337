"""Centralised helpers for locating koperasi application directories."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

_APP_ENV_VARS: Iterable[str] = ("LOCALAPPDATA", "APPDATA")


def _detect_base_directory() -> Path:
    override = os.environ.get("KOPERASI_DATA_DIR")
    if override:
        return Path(override).expanduser().resolve()
    for env_var in _APP_ENV_VARS:
        value = os.environ.get(env_var)
        if value:
            return Path(value).expanduser().resolve() / "Koperasi"
    return Path.home().resolve() / ".koperasi"


APP_DIR: Path = _detect_base_directory()
LOG_DIR: Path = APP_DIR / "logs"


def ensure_directory(path: Path) -> Path:
    """Ensure that ``path`` exists, returning the :class:`~pathlib.Path`."""

    path.mkdir(parents=True, exist_ok=True)
    return path


def log_path(filename: str = "koperasi.log") -> Path:
    ensure_directory(LOG_DIR)
    return LOG_DIR / filename


__all__ = [
    "APP_DIR",
    "LOG_DIR",
    "ensure_directory",
    "log_path",
]
