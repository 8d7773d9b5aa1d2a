"""CSV export and import of the whole reading list.

Export writes every book ordered by id. Import is all-or-nothing: rows are
parsed first, then inserted in one transaction, so a storage error leaves
the table exactly as it was.
"""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass
from itertools import chain
from pathlib import Path
from typing import List, Optional, Sequence, Union

from inventory import Book, InventoryStore, ReadingStatus

logger = logging.getLogger(__name__)

CSV_HEADER = ["id", "title", "author", "totalPages", "currentPage", "status", "isbn"]

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

PathLike = Union[str, Path]


@dataclass
class ImportResult:
    ok: bool
    imported: int = 0
    skipped: int = 0


def _to_int(value: str) -> int:
    """Parse a leading integer the way a lenient spreadsheet would; 0 otherwise."""
    match = _LEADING_INT.match(value or "")
    return int(match.group(1)) if match else 0


def _is_header(row: Sequence[str]) -> bool:
    return bool(row) and row[0].strip().lower() == "id"


def row_to_book(row: Sequence[str]) -> Optional[Book]:
    """Build a Book from a CSV row, clamping numbers into range.

    Returns None for rows with fewer than seven columns. The id column is
    ignored and the ISBN is kept verbatim.
    """
    if len(row) < len(CSV_HEADER):
        return None
    total_pages = max(0, _to_int(row[3]))
    current_page = min(max(0, _to_int(row[4])), total_pages)
    status = min(max(0, _to_int(row[5])), int(ReadingStatus.FINISHED))
    return Book(
        title=row[1],
        author=row[2],
        total_pages=total_pages,
        current_page=current_page,
        status=ReadingStatus(status),
        isbn=row[6],
    )


def book_to_row(book: Book) -> List[object]:
    return [
        book.id,
        book.title,
        book.author,
        book.total_pages,
        book.current_page,
        int(book.status),
        book.isbn,
    ]


def export_csv(store: InventoryStore, path: PathLike) -> bool:
    """Write every book to ``path``; an unreadable store leaves the file untouched."""
    books = store.fetch_all() if store.ok else None
    if books is None:
        logger.error("Export to %s skipped: the store could not be read", path)
        return False
    try:
        with open(path, "w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle, lineterminator="\n")
            writer.writerow(CSV_HEADER)
            for book in books:
                writer.writerow(book_to_row(book))
    except OSError as error:
        logger.error("Export to %s failed: %s", path, error)
        return False
    logger.info("Exported %d books to %s", len(books), path)
    return True


def import_csv(store: InventoryStore, path: PathLike) -> ImportResult:
    books: List[Book] = []
    skipped = 0
    try:
        with open(path, "r", encoding="utf-8-sig", newline="") as handle:
            reader = csv.reader(handle)
            first = next(reader, None)
            if first is None:
                logger.error("Import file %s is empty", path)
                return ImportResult(ok=False)
            rows = reader if _is_header(first) else chain([first], reader)
            for row in rows:
                book = row_to_book(row)
                if book is None:
                    logger.debug("Skipping malformed row %d: %r", reader.line_num, row)
                    skipped += 1
                    continue
                books.append(book)
    except (OSError, csv.Error, UnicodeDecodeError) as error:
        logger.error("Import from %s failed: %s", path, error)
        return ImportResult(ok=False)

    if not store.add_books(books):
        return ImportResult(ok=False, skipped=skipped)
    return ImportResult(ok=True, imported=len(books), skipped=skipped)
