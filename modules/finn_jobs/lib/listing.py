"""
Search result page extraction: job detail links and pagination links.

Both use an ordered selector chain; the first selector that yields at least
one usable link wins.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from bs4 import BeautifulSoup

from .dom import absolute_url, parse_html
from .strategies import first_success

log = logging.getLogger(__name__)

JOB_LINK_SELECTORS = (
    ".ads__unit > .ads__unit__link",
    ".f-card--job a",
    ".sf-search-ad a",
    'article[data-testid="job-card"] a',
    'a[href*="/job/fulltime/ad.html"]',
)
PAGINATION_SELECTORS = (
    "a.pagination__page",
    'nav[aria-label*="paginering" i] a',
    'a[href*="page="]',
)

# /job/fulltime/ad.html?finnkode=123, /job/ad.html?finnkode=123, /job/ad/123
DETAIL_URL_RE = re.compile(r"/job/(?:[\w-]+/)?ad(?:\.html\?(?:[^#]*&)?finnkode=\d+|/\d+)")


@dataclass(frozen=True)
class ListingPage:
    detail_urls: tuple[str, ...]
    pagination_urls: tuple[str, ...]


def is_detail_url(url: str) -> bool:
    return bool(DETAIL_URL_RE.search(url or ""))


def _dedupe(urls: Iterable[str | None]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for u in urls:
        if u and u not in seen:
            seen.add(u)
            out.append(u)
    return out


def _links(soup: BeautifulSoup, selector: str, page_url: str) -> list[str]:
    return _dedupe(absolute_url(a.get("href"), page_url) for a in soup.select(selector) if a.get("href"))


def _selector_strategy(
    selector: str, keep: Callable[[str], bool] | None = None
) -> Callable[[BeautifulSoup, str], list[str]]:
    def strategy(soup: BeautifulSoup, page_url: str) -> list[str]:
        urls = _links(soup, selector, page_url)
        return [u for u in urls if keep(u)] if keep else urls

    strategy.__name__ = f"select({selector})"
    return strategy


def _broad_detail_scan(soup: BeautifulSoup, page_url: str) -> list[str]:
    return [u for u in _links(soup, "a[href]", page_url) if is_detail_url(u)]


DETAIL_LINK_STRATEGIES = (
    *(_selector_strategy(sel, keep=is_detail_url) for sel in JOB_LINK_SELECTORS),
    _broad_detail_scan,
)
PAGINATION_STRATEGIES = tuple(_selector_strategy(sel) for sel in PAGINATION_SELECTORS)


def detail_links(soup: BeautifulSoup, page_url: str) -> list[str]:
    return first_success(DETAIL_LINK_STRATEGIES, soup, page_url) or []


def pagination_links(soup: BeautifulSoup, page_url: str) -> list[str]:
    urls = first_success(PAGINATION_STRATEGIES, soup, page_url) or []
    # the current page is usually among the page links
    return [u for u in urls if u != page_url and not is_detail_url(u)]


def extract_listing(html: str, page_url: str) -> ListingPage:
    """Ordered, de-duplicated detail and pagination URLs found on one search page."""
    soup = parse_html(html)
    details = detail_links(soup, page_url)
    pages = pagination_links(soup, page_url)
    log.debug("Listing %s: %d detail link(s), %d page link(s)", page_url, len(details), len(pages))
    return ListingPage(detail_urls=tuple(details), pagination_urls=tuple(pages))
