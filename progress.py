from __future__ import annotations

from typing import Optional

from inventory import Book, ReadingStatus


def percent_complete(book: Book) -> float:
    """Share of pages read, in percent. Values above 100 are not clamped."""
    if book.total_pages <= 0:
        return 0.0
    return 100.0 * book.current_page / book.total_pages


def days_to_finish(book: Book, daily_rate: int) -> Optional[int]:
    """Whole days left at ``daily_rate`` pages per day, or None if unknown."""
    if daily_rate <= 0 or book.current_page >= book.total_pages:
        return None
    remaining = book.total_pages - book.current_page
    return (remaining + daily_rate - 1) // daily_rate


def infer_status(total_pages: int, current_page: int) -> ReadingStatus:
    if total_pages > 0 and current_page >= total_pages:
        return ReadingStatus.FINISHED
    if current_page > 0:
        return ReadingStatus.READING
    return ReadingStatus.TO_READ
