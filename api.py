from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import requests
from pydantic import BaseModel, ValidationError

from config import DEFAULT_HTTP_TIMEOUT

logger = logging.getLogger(__name__)

OPEN_LIBRARY_HOME = "https://openlibrary.org/"
OPEN_LIBRARY_ISBN_URL = "https://openlibrary.org/isbn/{isbn}.json"
GOOGLE_BOOKS_VOLUMES_URL = "https://www.googleapis.com/books/v1/volumes"
CONNECTIVITY_CHECK_URL = "https://www.google.com/generate_204"
PROBE_ISBN = "0000000000000"
USER_AGENT = "BookTracker/1.0"


# -----------------------------------------------------------------------------
# Results
# -----------------------------------------------------------------------------


class SourceStatus(Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    SOURCE_UNAVAILABLE = "source_unavailable"
    INVALID_RESPONSE = "invalid_response"


@dataclass
class BookMetadata:
    title: str = ""
    author: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.title and not self.author


@dataclass
class SourceResult:
    """Outcome of one source lookup. ``metadata`` is only set when OK."""

    status: SourceStatus
    metadata: Optional[BookMetadata] = None

    @property
    def ok(self) -> bool:
        return self.status is SourceStatus.OK

    @classmethod
    def found(cls, title: Optional[str], author: Optional[str]) -> "SourceResult":
        return cls(SourceStatus.OK, BookMetadata(title=title or "", author=author or ""))


# -----------------------------------------------------------------------------
# Response payloads
# -----------------------------------------------------------------------------


class OpenLibraryEdition(BaseModel):
    title: Optional[str] = None
    by_statement: Optional[str] = None


class GoogleVolumeInfo(BaseModel):
    title: Optional[str] = None
    authors: Optional[List[str]] = None


class GoogleVolume(BaseModel):
    volumeInfo: Optional[GoogleVolumeInfo] = None


class GoogleVolumesResponse(BaseModel):
    items: Optional[List[GoogleVolume]] = None
    error: Optional[Any] = None


# -----------------------------------------------------------------------------
# HTTP helpers
# -----------------------------------------------------------------------------


def build_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    return session


def fetch_json(
    session: requests.Session,
    url: str,
    *,
    params: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> Tuple[SourceStatus, Any]:
    """GET ``url`` and decode JSON, folding every failure into a status."""
    try:
        response = session.get(url, params=params, timeout=timeout)
    except requests.RequestException as error:
        logger.warning("Request to %s failed: %s", url, error)
        return SourceStatus.SOURCE_UNAVAILABLE, None
    if response.status_code == 404:
        return SourceStatus.NOT_FOUND, None
    if not 200 <= response.status_code < 300:
        logger.warning("%s returned HTTP %s", url, response.status_code)
        return SourceStatus.SOURCE_UNAVAILABLE, None
    try:
        return SourceStatus.OK, response.json()
    except ValueError:
        logger.warning("%s returned a body that is not JSON", url)
        return SourceStatus.INVALID_RESPONSE, None


def url_reachable(
    session: requests.Session, url: str, *, timeout: float = DEFAULT_HTTP_TIMEOUT
) -> bool:
    """True when a GET on ``url`` answers with any 2xx status."""
    try:
        response = session.get(url, timeout=timeout)
    except requests.RequestException as error:
        logger.info("%s unreachable: %s", url, error)
        return False
    return 200 <= response.status_code < 300


def internet_reachable(session: requests.Session, *, timeout: float = DEFAULT_HTTP_TIMEOUT) -> bool:
    return url_reachable(session, CONNECTIVITY_CHECK_URL, timeout=timeout)


def open_library_reachable(
    session: requests.Session, *, timeout: float = DEFAULT_HTTP_TIMEOUT
) -> bool:
    return url_reachable(session, OPEN_LIBRARY_HOME, timeout=timeout)


def google_books_ready(
    api_key: Optional[str],
    session: requests.Session,
    *,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> bool:
    """Send the smallest possible authenticated query and check for an error payload."""
    if not api_key:
        return False
    status, data = fetch_json(
        session,
        GOOGLE_BOOKS_VOLUMES_URL,
        params={
            "q": f"isbn:{PROBE_ISBN}",
            "maxResults": "1",
            "fields": "totalItems",
            "key": api_key,
        },
        timeout=timeout,
    )
    if status is not SourceStatus.OK or not isinstance(data, dict):
        return False
    return "error" not in data


# -----------------------------------------------------------------------------
# Sources
# -----------------------------------------------------------------------------


class OpenLibrarySource:
    """ISBN-keyed edition lookup on Open Library. No credential required."""

    name = "openlibrary"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        self.session = session or build_session()
        self.timeout = timeout

    def lookup_by_isbn(self, isbn: str) -> SourceResult:
        status, data = fetch_json(
            self.session,
            OPEN_LIBRARY_ISBN_URL.format(isbn=isbn),
            timeout=self.timeout,
        )
        if status is not SourceStatus.OK:
            return SourceResult(status)
        try:
            edition = OpenLibraryEdition.model_validate(data)
        except ValidationError as error:
            logger.warning("Unexpected Open Library payload for %s: %s", isbn, error)
            return SourceResult(SourceStatus.INVALID_RESPONSE)
        return SourceResult.found(edition.title, edition.by_statement)


class GoogleBooksSource:
    """Volume search on Google Books keyed by ``isbn:<isbn>``."""

    name = "google"

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        self.api_key = api_key
        self.session = session or build_session()
        self.timeout = timeout

    def lookup_by_isbn(self, isbn: str) -> SourceResult:
        params = {"q": f"isbn:{isbn}"}
        if self.api_key:
            params["key"] = self.api_key
        status, data = fetch_json(
            self.session,
            GOOGLE_BOOKS_VOLUMES_URL,
            params=params,
            timeout=self.timeout,
        )
        if status is not SourceStatus.OK:
            return SourceResult(status)
        try:
            payload = GoogleVolumesResponse.model_validate(data)
        except ValidationError as error:
            logger.warning("Unexpected Google Books payload for %s: %s", isbn, error)
            return SourceResult(SourceStatus.INVALID_RESPONSE)
        if payload.error is not None:
            logger.warning("Google Books reported an error for %s: %s", isbn, payload.error)
            return SourceResult(SourceStatus.SOURCE_UNAVAILABLE)
        if not payload.items:
            return SourceResult(SourceStatus.NOT_FOUND)
        info = payload.items[0].volumeInfo or GoogleVolumeInfo()
        author = info.authors[0] if info.authors else None
        return SourceResult.found(info.title, author)
