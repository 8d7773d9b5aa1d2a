from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_APP_DIR = Path.home() / ".book_tracker"
DB_FILENAME = "books.db"
DEFAULT_HTTP_TIMEOUT = 10.0


class AppConfig(BaseModel):
    """Runtime settings, read once at startup."""

    app_dir: Path = DEFAULT_APP_DIR
    db_path: Path = DEFAULT_APP_DIR / DB_FILENAME
    google_books_api_key: Optional[str] = None
    http_timeout: float = Field(default=DEFAULT_HTTP_TIMEOUT, gt=0)
    log_level: str = "WARNING"

    @field_validator("google_books_api_key")
    @classmethod
    def _blank_key_is_missing(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value!r}")
        return level

    @property
    def has_google_key(self) -> bool:
        return self.google_books_api_key is not None


def load_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build an AppConfig from environment variables.

    ``BOOK_TRACKER_HOME`` moves the data directory; ``BOOK_TRACKER_DB`` points
    at a specific database file and wins over the directory default.
    """
    env = os.environ if environ is None else environ

    home = env.get("BOOK_TRACKER_HOME")
    app_dir = Path(home).expanduser() if home else DEFAULT_APP_DIR
    db_override = env.get("BOOK_TRACKER_DB")
    db_path = Path(db_override).expanduser() if db_override else app_dir / DB_FILENAME

    values = {
        "app_dir": app_dir,
        "db_path": db_path,
        "google_books_api_key": env.get("GOOGLE_BOOKS_API_KEY"),
    }
    if env.get("BOOK_TRACKER_HTTP_TIMEOUT"):
        values["http_timeout"] = env["BOOK_TRACKER_HTTP_TIMEOUT"]
    if env.get("BOOK_TRACKER_LOG_LEVEL"):
        values["log_level"] = env["BOOK_TRACKER_LOG_LEVEL"]
    return AppConfig(**values)
