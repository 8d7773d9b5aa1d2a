from __future__ import annotations

import requests

from api import (
    GOOGLE_BOOKS_VOLUMES_URL,
    GoogleBooksSource,
    OpenLibrarySource,
    SourceStatus,
    google_books_ready,
    internet_reachable,
)
from tests.fakes import FakeResponse, FakeSession


def test_open_library_reads_title_and_by_statement() -> None:
    session = FakeSession(
        FakeResponse(payload={"title": "Data Structures", "by_statement": "by A. Author"})
    )
    result = OpenLibrarySource(session, timeout=3).lookup_by_isbn("9780306406157")

    assert result.status is SourceStatus.OK
    assert result.metadata.title == "Data Structures"
    assert result.metadata.author == "by A. Author"
    assert session.calls[0]["url"] == "https://openlibrary.org/isbn/9780306406157.json"
    assert session.calls[0]["timeout"] == 3


def test_open_library_title_without_author() -> None:
    session = FakeSession(FakeResponse(payload={"title": "Untitled Author"}))
    result = OpenLibrarySource(session).lookup_by_isbn("9780306406157")

    assert result.ok
    assert result.metadata.author == ""


def test_open_library_failures_are_tagged() -> None:
    cases = [
        (FakeResponse(status_code=404), SourceStatus.NOT_FOUND),
        (FakeResponse(status_code=503), SourceStatus.SOURCE_UNAVAILABLE),
        (requests.Timeout("slow"), SourceStatus.SOURCE_UNAVAILABLE),
        (FakeResponse(text="<html>"), SourceStatus.INVALID_RESPONSE),
        (FakeResponse(payload=["not", "an", "object"]), SourceStatus.INVALID_RESPONSE),
        (FakeResponse(payload={"title": {"nested": True}}), SourceStatus.INVALID_RESPONSE),
    ]
    for response, expected in cases:
        result = OpenLibrarySource(FakeSession(response)).lookup_by_isbn("9780306406157")
        assert result.status is expected
        assert result.metadata is None


def test_google_books_takes_first_volume_and_first_author() -> None:
    session = FakeSession(
        FakeResponse(
            payload={
                "totalItems": 2,
                "items": [
                    {"volumeInfo": {"title": "First", "authors": ["Ann", "Bob"]}},
                    {"volumeInfo": {"title": "Second", "authors": ["Cy"]}},
                ],
            }
        )
    )
    result = GoogleBooksSource("secret", session).lookup_by_isbn("9780306406157")

    assert result.ok
    assert (result.metadata.title, result.metadata.author) == ("First", "Ann")
    assert session.calls[0]["url"] == GOOGLE_BOOKS_VOLUMES_URL
    assert session.calls[0]["params"] == {"q": "isbn:9780306406157", "key": "secret"}


def test_google_books_without_key_omits_key_param() -> None:
    session = FakeSession(FakeResponse(payload={"items": [{"volumeInfo": {"authors": ["Only"]}}]}))
    result = GoogleBooksSource(None, session).lookup_by_isbn("9780306406157")

    assert session.calls[0]["params"] == {"q": "isbn:9780306406157"}
    assert (result.metadata.title, result.metadata.author) == ("", "Only")


def test_google_books_empty_and_error_payloads() -> None:
    empty = GoogleBooksSource("k", FakeSession(FakeResponse(payload={"totalItems": 0})))
    assert empty.lookup_by_isbn("9780306406157").status is SourceStatus.NOT_FOUND

    error = GoogleBooksSource(
        "k", FakeSession(FakeResponse(payload={"error": {"code": 400, "message": "bad key"}}))
    )
    assert error.lookup_by_isbn("9780306406157").status is SourceStatus.SOURCE_UNAVAILABLE

    bad = GoogleBooksSource("k", FakeSession(FakeResponse(payload={"items": "nope"})))
    assert bad.lookup_by_isbn("9780306406157").status is SourceStatus.INVALID_RESPONSE


def test_google_books_ready_requires_key_and_clean_response() -> None:
    session = FakeSession()
    assert not google_books_ready(None, session)
    assert not google_books_ready("", session)
    assert session.calls == []

    ready = FakeSession(FakeResponse(payload={"totalItems": 0}))
    assert google_books_ready("k", ready)
    assert ready.calls[0]["params"]["q"] == "isbn:0000000000000"
    assert ready.calls[0]["params"]["maxResults"] == "1"
    assert ready.calls[0]["params"]["key"] == "k"

    assert not google_books_ready("k", FakeSession(FakeResponse(payload={"error": {"code": 403}})))
    assert not google_books_ready("k", FakeSession(FakeResponse(text="oops")))
    assert not google_books_ready("k", FakeSession(FakeResponse(status_code=500)))
    assert not google_books_ready("k", FakeSession(requests.ConnectionError("down")))


def test_internet_reachable_accepts_any_2xx() -> None:
    assert internet_reachable(FakeSession(FakeResponse(status_code=204)))
    assert not internet_reachable(FakeSession(FakeResponse(status_code=302)))
    assert not internet_reachable(FakeSession(requests.ConnectionError("offline")))
