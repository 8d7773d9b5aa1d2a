from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from config import DEFAULT_APP_DIR, DEFAULT_HTTP_TIMEOUT, load_config


def test_defaults_without_environment() -> None:
    config = load_config({})

    assert config.app_dir == DEFAULT_APP_DIR
    assert config.db_path == DEFAULT_APP_DIR / "books.db"
    assert config.google_books_api_key is None
    assert not config.has_google_key
    assert config.http_timeout == DEFAULT_HTTP_TIMEOUT
    assert config.log_level == "WARNING"


def test_environment_overrides(tmp_path: Path) -> None:
    config = load_config(
        {
            "BOOK_TRACKER_HOME": str(tmp_path),
            "GOOGLE_BOOKS_API_KEY": "  abc123  ",
            "BOOK_TRACKER_HTTP_TIMEOUT": "2.5",
            "BOOK_TRACKER_LOG_LEVEL": "debug",
        }
    )

    assert config.db_path == tmp_path / "books.db"
    assert config.google_books_api_key == "abc123"
    assert config.has_google_key
    assert config.http_timeout == 2.5
    assert config.log_level == "DEBUG"


def test_explicit_db_path_wins(tmp_path: Path) -> None:
    config = load_config(
        {"BOOK_TRACKER_HOME": str(tmp_path), "BOOK_TRACKER_DB": str(tmp_path / "x" / "mine.db")}
    )
    assert config.db_path == tmp_path / "x" / "mine.db"


def test_blank_key_counts_as_missing() -> None:
    assert load_config({"GOOGLE_BOOKS_API_KEY": "   "}).google_books_api_key is None


@pytest.mark.parametrize(
    "env",
    [
        {"BOOK_TRACKER_HTTP_TIMEOUT": "soon"},
        {"BOOK_TRACKER_HTTP_TIMEOUT": "0"},
        {"BOOK_TRACKER_LOG_LEVEL": "chatty"},
    ],
)
def test_invalid_values_are_rejected(env) -> None:
    with pytest.raises(ValidationError):
        load_config(env)
