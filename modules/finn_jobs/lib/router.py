"""
Request routing for the crawl.

    LIST    -> extract listing, enqueue DETAIL links (bounded by the budget)
               and, when the page cannot fill the budget on its own, the
               pagination links as LIST
    DETAIL  -> extract the job record and hand it to the emitter
    (none)  -> diagnostic log only; never re-enqueued

Requests for hosts other than finn.no are refused by admit() before any fetch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from urllib.parse import urlsplit

from .budget import JobBudget
from .detail import extract_job
from .emitter import RecordEmitter
from .listing import ListingPage, extract_listing, is_detail_url
from .models import CrawlRequest, JobRecord, Label

log = logging.getLogger(__name__)

TARGET_HOST = "finn.no"


def is_target_host(url: str) -> bool:
    host = (urlsplit(url or "").hostname or "").lower().rstrip(".")
    return host == TARGET_HOST or host.endswith("." + TARGET_HOST)


def classify_url(url: str) -> str:
    """'foreign', 'detail', 'listing' or 'other'; used for diagnostics only."""
    if not is_target_host(url):
        return "foreign"
    if is_detail_url(url):
        return "detail"
    if "/search" in urlsplit(url).path:
        return "listing"
    return "other"


def plan_listing(listing: ListingPage, remaining: int) -> list[CrawlRequest]:
    """
    Follow-up requests for one search page.

    At most `remaining` detail links are taken, in page order. Pagination is
    followed only while this page alone cannot use up the budget.
    """
    remaining = max(0, remaining)
    links = listing.detail_urls
    out = [CrawlRequest(url=u, label=Label.DETAIL) for u in links[:remaining]]
    if remaining > len(links) and listing.pagination_urls:
        out.extend(CrawlRequest(url=u, label=Label.LIST) for u in listing.pagination_urls)
    return out


class Router:
    def __init__(
        self,
        budget: JobBudget,
        emitter: RecordEmitter,
        *,
        listing_extractor: Callable[[str, str], ListingPage] = extract_listing,
        detail_extractor: Callable[[str, str], JobRecord] = extract_job,
    ) -> None:
        self.budget = budget
        self.emitter = emitter
        self.listing_extractor = listing_extractor
        self.detail_extractor = detail_extractor

    def admit(self, request: CrawlRequest) -> bool:
        if is_target_host(request.url):
            return True
        log.warning("Rejecting %s request for foreign host: %s", request.label, request.url)
        return False

    def handle(self, request: CrawlRequest, html: str) -> list[CrawlRequest]:
        """
        Process one fetched page and return the follow-up requests.

        ExtractionError from a detail page propagates; the caller drops the request.
        """
        if request.label is Label.LIST:
            return self.handle_listing(request, html)
        if request.label is Label.DETAIL:
            self.handle_detail(request, html)
            return []
        log.warning("Unlabeled request (%s url): %s", classify_url(request.url), request.url)
        return []

    def handle_listing(self, request: CrawlRequest, html: str) -> list[CrawlRequest]:
        listing = self.listing_extractor(html, request.url)
        remaining = self.budget.remaining
        follow_ups = plan_listing(listing, remaining)
        log.info(
            "Listing %s: %d job link(s), %d page link(s), remaining=%d, enqueuing %d",
            request.url,
            len(listing.detail_urls),
            len(listing.pagination_urls),
            remaining,
            len(follow_ups),
        )
        return follow_ups

    def handle_detail(self, request: CrawlRequest, html: str) -> bool:
        record = self.detail_extractor(request.url, html)
        return self.emitter.emit(record)
