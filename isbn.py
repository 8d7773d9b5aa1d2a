from __future__ import annotations

import re

ISBN13_PREFIX = "978"

_NOT_ISBN_CHARS = re.compile(r"[^0-9X]")


def clean_isbn(raw: str) -> str:
    """Strip everything except digits and the X check character."""
    if not raw:
        return ""
    return _NOT_ISBN_CHARS.sub("", raw.replace("x", "X"))


def isbn13_check_digit(first12: str) -> int:
    total = 0
    for index, char in enumerate(first12):
        digit = int(char)
        total += digit if index % 2 == 0 else 3 * digit
    return (10 - total % 10) % 10


def isbn10_to_isbn13(isbn10: str) -> str:
    """Convert an ISBN-10 to ISBN-13.

    The ISBN-10 check digit is dropped, not validated. An X among the first
    nine characters is rejected with an empty string rather than carried
    into a meaningless digit string; this is the one input the conversion
    refuses instead of passing through unchecked.
    """
    core = ISBN13_PREFIX + isbn10[:9]
    if not core.isdigit() or len(core) != 12:
        return ""
    return core + str(isbn13_check_digit(core))


def normalize_isbn(raw: str) -> str:
    """Return the canonical 13-digit form of ``raw`` or "" if it is not an ISBN.

    Thirteen-character input is passed through without checksum validation.
    """
    cleaned = clean_isbn(raw)
    if len(cleaned) == 13:
        return cleaned
    if len(cleaned) == 10:
        return isbn10_to_isbn13(cleaned)
    return ""


def is_valid_isbn(raw: str) -> bool:
    return normalize_isbn(raw) != ""
