"""Paths and settings, read from the environment (and a local .env file)."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_HOME = Path.home() / ".config" / "promptlib"


def home_dir() -> Path:
    value = os.environ.get("PROMPTLIB_HOME")
    return Path(value).expanduser() if value else DEFAULT_HOME


def db_path() -> Path:
    value = os.environ.get("PROMPTLIB_DB_PATH")
    return Path(value).expanduser() if value else home_dir() / "promptlib.db"


def logs_dir() -> Path:
    return home_dir() / "logs"


def log_level() -> str:
    return os.environ.get("PROMPTLIB_LOG_LEVEL", "INFO").upper()
