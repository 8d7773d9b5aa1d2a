from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from config import DEFAULT_APP_DIR, DB_FILENAME

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = DEFAULT_APP_DIR / DB_FILENAME
DAILY_RATE_KEY = "daily_rate"

BOOK_COLUMNS = ["id", "title", "author", "total_pages", "current_page", "status", "isbn"]


class ReadingStatus(IntEnum):
    TO_READ = 0
    READING = 1
    FINISHED = 2


_STATUS_LABELS = {
    ReadingStatus.TO_READ: "To-Read",
    ReadingStatus.READING: "Reading",
    ReadingStatus.FINISHED: "Finished",
}

_STATUS_ALIASES = {
    "to-read": ReadingStatus.TO_READ,
    "toread": ReadingStatus.TO_READ,
    "todo": ReadingStatus.TO_READ,
    "0": ReadingStatus.TO_READ,
    "reading": ReadingStatus.READING,
    "1": ReadingStatus.READING,
    "finished": ReadingStatus.FINISHED,
    "done": ReadingStatus.FINISHED,
    "2": ReadingStatus.FINISHED,
}


def status_label(status: ReadingStatus) -> str:
    return _STATUS_LABELS[ReadingStatus(status)]


def parse_status(text: str) -> Optional[ReadingStatus]:
    """Map user text such as "done" or "to-read" to a status, or None."""
    return _STATUS_ALIASES.get((text or "").strip().lower())


def _stored_status(value: object) -> ReadingStatus:
    """Clamp a stored status into range; non-numbers read as TO_READ."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return ReadingStatus.TO_READ
    return ReadingStatus(min(max(0, number), int(ReadingStatus.FINISHED)))


def _fold_case(value: Optional[str]) -> str:
    return (value or "").lower()


@dataclass
class Book:
    title: str
    author: str = ""
    total_pages: int = 0
    current_page: int = 0
    status: ReadingStatus = ReadingStatus.TO_READ
    isbn: str = ""
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Book":
        return cls(
            id=int(row["id"]),
            title=row["title"] or "",
            author=row["author"] or "",
            total_pages=int(row["total_pages"]),
            current_page=int(row["current_page"]),
            status=_stored_status(row["status"]),
            isbn=row["isbn"] or "",
        )

    def insert_values(self) -> Tuple[str, str, int, int, int, str]:
        return (
            self.title,
            self.author or "",
            int(self.total_pages),
            int(self.current_page),
            int(self.status),
            self.isbn or "",
        )


class InventoryStore:
    """SQLite-backed store for the reading list and its settings.

    Every public method reports failure through its return value (None,
    False or an empty list) instead of raising; the error is logged.
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path or DEFAULT_DB_PATH)
        self._conn: Optional[sqlite3.Connection] = None
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            # SQLite lower() folds ASCII only.
            conn.create_function("py_lower", 1, _fold_case, deterministic=True)
            self._conn = conn
            self._ensure_schema()
        except (sqlite3.Error, OSError) as error:
            logger.error("Unable to open database %s: %s", self.db_path, error)
            if self._conn is not None:
                self._conn.close()
            self._conn = None

    @property
    def ok(self) -> bool:
        return self._conn is not None

    # --------------------------------------------------------------------- #
    # Schema
    # --------------------------------------------------------------------- #
    def _ensure_schema(self) -> None:
        with self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS books (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    author TEXT,
                    total_pages INTEGER NOT NULL,
                    current_page INTEGER NOT NULL,
                    status INTEGER NOT NULL,
                    isbn TEXT
                );
                """
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_books_title ON books(title COLLATE NOCASE);"
            )
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_books_author ON books(author COLLATE NOCASE);"
            )
            self._conn.execute("CREATE INDEX IF NOT EXISTS idx_books_status ON books(status);")

    # --------------------------------------------------------------------- #
    # Utility helpers
    # --------------------------------------------------------------------- #
    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _query(self, sql: str, params: Tuple = ()) -> Optional[List[Book]]:
        """Run a read; None when the store is closed or the query fails."""
        if self._conn is None:
            return None
        try:
            rows = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as error:
            logger.error("Query failed: %s", error)
            return None
        return [Book.from_row(row) for row in rows]

    def _select(self, sql: str, params: Tuple = ()) -> List[Book]:
        return self._query(sql, params) or []

    def _mutate(self, sql: str, params: Tuple) -> bool:
        """Run one write statement; True when at least one row changed."""
        if self._conn is None:
            return False
        try:
            with self._conn:
                cursor = self._conn.execute(sql, params)
        except sqlite3.Error as error:
            logger.error("Update failed: %s", error)
            return False
        return cursor.rowcount > 0

    # --------------------------------------------------------------------- #
    # Book management
    # --------------------------------------------------------------------- #
    def add_book(self, book: Book) -> Optional[int]:
        """Insert a book and return its new id. The id on ``book`` is ignored."""
        if self._conn is None:
            return None
        try:
            with self._conn:
                cursor = self._insert(book)
        except sqlite3.Error as error:
            logger.error("Could not add %r: %s", book.title, error)
            return None
        return int(cursor.lastrowid)

    def add_books(self, books: Iterable[Book]) -> bool:
        """Insert all books in a single transaction; nothing is kept on failure."""
        if self._conn is None:
            return False
        try:
            with self._conn:
                count = 0
                for book in books:
                    self._insert(book)
                    count += 1
        except sqlite3.Error as error:
            logger.error("Batch insert rolled back: %s", error)
            return False
        logger.info("Inserted %d books", count)
        return True

    def _insert(self, book: Book) -> sqlite3.Cursor:
        return self._conn.execute(
            """
            INSERT INTO books (title, author, total_pages, current_page, status, isbn)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            book.insert_values(),
        )

    def get_book(self, book_id: int) -> Optional[Book]:
        rows = self._select(
            f"SELECT {', '.join(BOOK_COLUMNS)} FROM books WHERE id = ?;",
            (book_id,),
        )
        return rows[0] if rows else None

    def list_books(self, status: Optional[ReadingStatus] = None) -> List[Book]:
        sql = f"SELECT {', '.join(BOOK_COLUMNS)} FROM books"
        params: Tuple = ()
        if status is not None:
            sql += " WHERE status = ?"
            params = (int(status),)
        sql += " ORDER BY id ASC;"
        return self._select(sql, params)

    def fetch_all(self) -> Optional[List[Book]]:
        """Every book ordered by id, or None when the read fails.

        Unlike list_books, an unreadable store is not reported as empty.
        """
        return self._query(f"SELECT {', '.join(BOOK_COLUMNS)} FROM books ORDER BY id ASC;")

    def search_books(self, term: str) -> List[Book]:
        """Case-insensitive substring match on title or author."""
        escaped = _fold_case(term).replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        search_like = f"%{escaped}%"
        return self._select(
            f"""
            SELECT {', '.join(BOOK_COLUMNS)}
            FROM books
            WHERE py_lower(title) LIKE ? ESCAPE '\\'
               OR py_lower(author) LIKE ? ESCAPE '\\'
            ORDER BY id ASC;
            """,
            (search_like, search_like),
        )

    def update_progress(self, book_id: int, current_page: int, status: ReadingStatus) -> bool:
        """Write both fields as given; status is not adjusted to the page."""
        status = self._valid_status(book_id, status)
        if status is None:
            return False
        return self._mutate(
            "UPDATE books SET current_page = ?, status = ? WHERE id = ?;",
            (int(current_page), int(status), book_id),
        )

    def set_status(self, book_id: int, status: ReadingStatus) -> bool:
        """Change status; FINISHED also moves current_page to total_pages."""
        status = self._valid_status(book_id, status)
        if status is None:
            return False
        return self._mutate(
            """
            UPDATE books
            SET status = ?,
                current_page = CASE WHEN ? = ? THEN total_pages ELSE current_page END
            WHERE id = ?;
            """,
            (int(status), int(status), int(ReadingStatus.FINISHED), book_id),
        )

    @staticmethod
    def _valid_status(book_id: int, status: object) -> Optional[ReadingStatus]:
        try:
            return ReadingStatus(status)
        except (TypeError, ValueError):
            logger.error("Rejected status %r for book %s", status, book_id)
            return None

    def delete_book(self, book_id: int) -> bool:
        return self._mutate("DELETE FROM books WHERE id = ?;", (book_id,))

    # ------------------------------------------------------------------ #
    # Settings
    # ------------------------------------------------------------------ #
    def get_daily_rate(self) -> int:
        """Pages per day used for ETA estimates; 0 when unset."""
        if self._conn is None:
            return 0
        try:
            row = self._conn.execute(
                "SELECT value FROM settings WHERE key = ?;",
                (DAILY_RATE_KEY,),
            ).fetchone()
        except sqlite3.Error as error:
            logger.error("Could not read %s: %s", DAILY_RATE_KEY, error)
            return 0
        if row is None:
            return 0
        try:
            rate = int(row["value"])
        except (TypeError, ValueError):
            return 0
        return max(0, rate)

    def set_daily_rate(self, rate: int) -> bool:
        return self._mutate(
            """
            INSERT INTO settings (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value;
            """,
            (DAILY_RATE_KEY, str(max(0, int(rate)))),
        )


# ------------------------------------------------------------------------------
# Convenience factory
# ------------------------------------------------------------------------------
def get_store(db_path: Optional[Path] = None) -> InventoryStore:
    return InventoryStore(db_path=db_path)
