from __future__ import annotations


class FinnJobsError(Exception):
    """Base exception for crawl failures."""


class FetchError(FinnJobsError):
    """A page could not be fetched (network error or non-2xx after retries)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"fetch failed for {url}: {reason}")
        self.url = url
        self.reason = reason


class ExtractionError(FinnJobsError):
    """A detail page lacks the structure a record needs (e.g. no title)."""


class CrawlError(FinnJobsError):
    """The crawl as a whole failed (the search page itself could not be fetched)."""
