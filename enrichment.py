from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from api import (
    BookMetadata,
    GoogleBooksSource,
    OpenLibrarySource,
    SourceResult,
    build_session,
    google_books_ready,
    internet_reachable,
    open_library_reachable,
)
from config import DEFAULT_HTTP_TIMEOUT, AppConfig
from isbn import normalize_isbn

logger = logging.getLogger(__name__)


class MetadataSource(Protocol):
    name: str

    def lookup_by_isbn(self, isbn: str) -> SourceResult: ...


# -----------------------------------------------------------------------------
# Readiness
# -----------------------------------------------------------------------------


def probe_readiness(
    api_key: Optional[str],
    network_reachable: bool,
    *,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> bool:
    """Decide once per session whether the credentialed source may be used.

    Without a key no request is made at all.
    """
    if not api_key or not network_reachable:
        return False
    return google_books_ready(api_key, session or build_session(), timeout=timeout)


@dataclass
class StartupReport:
    internet: bool
    google_key: bool
    google_books: bool
    open_library: bool

    @property
    def degraded(self) -> bool:
        return not (self.google_books and self.open_library)


def run_startup_checks(config: AppConfig, session: Optional[requests.Session] = None) -> StartupReport:
    session = session or build_session()
    internet = internet_reachable(session, timeout=config.http_timeout)
    google = probe_readiness(
        config.google_books_api_key,
        internet,
        session=session,
        timeout=config.http_timeout,
    )
    open_library = internet and open_library_reachable(session, timeout=config.http_timeout)
    report = StartupReport(
        internet=internet,
        google_key=config.has_google_key,
        google_books=google,
        open_library=open_library,
    )
    logger.info("Startup checks: %s", report)
    return report


# -----------------------------------------------------------------------------
# Lookup chain
# -----------------------------------------------------------------------------


class MetadataLookupChain:
    """Try the primary source, then the secondary one if it passed its probe.

    A primary hit with a title wins even when the author is missing; the
    secondary hit is accepted when it carries either field.
    """

    def __init__(
        self,
        primary: MetadataSource,
        secondary: Optional[MetadataSource] = None,
        *,
        secondary_ready: bool = False,
    ):
        self.primary = primary
        self.secondary = secondary
        self.secondary_ready = secondary_ready

    @property
    def uses_secondary(self) -> bool:
        return self.secondary is not None and self.secondary_ready

    def lookup(self, isbn: str) -> Optional[BookMetadata]:
        isbn13 = normalize_isbn(isbn)
        if not isbn13:
            return None

        result = self.primary.lookup_by_isbn(isbn13)
        if result.ok and result.metadata and result.metadata.title:
            return result.metadata
        logger.info("%s gave no title for %s (%s)", self.primary.name, isbn13, result.status.value)

        if self.uses_secondary:
            result = self.secondary.lookup_by_isbn(isbn13)
            if result.ok and result.metadata and not result.metadata.is_empty:
                return result.metadata
            logger.info("%s gave nothing for %s (%s)", self.secondary.name, isbn13, result.status.value)

        return None


def build_lookup_chain(
    config: AppConfig,
    *,
    secondary_ready: bool,
    session: Optional[requests.Session] = None,
) -> MetadataLookupChain:
    session = session or build_session()
    return MetadataLookupChain(
        OpenLibrarySource(session, timeout=config.http_timeout),
        GoogleBooksSource(config.google_books_api_key, session, timeout=config.http_timeout),
        secondary_ready=secondary_ready,
    )
