from __future__ import annotations

from typing import Any

from .lib import render
from .lib.config import Settings
from .lib.db import JobStore
from .lib.engine import crawl
from .lib.errors import CrawlError
from .lib.http_client import HttpClient
from .lib.logging_bridge import activity as log_activity
from .lib.logging_bridge import error as log_error

__all__ = ["CrawlError", "run"]


def run(**kwargs: Any) -> tuple[str, dict] | dict:
    """
    Entry point for the 'finn_jobs' module.

    Accepts kwargs (from scheduler/runner), including:
      search_url: str = "https://www.finn.no/job/fulltime/search.html?occupation=0.23&occupation=0.22"
      max_jobs: int = 100
      max_concurrency: int = 10
      sqlite_path: str = "/app/local/state/finn_jobs.db"
      request_timeout: float = 15
      proxy_url: Optional[str]
      skip_network: bool = False

    Returns:
      - (html: str, meta: dict) when at least one job was emitted, or
      - meta: dict when nothing was emitted.

    Raises:
      CrawlError: the search page itself could not be fetched.
    """
    settings = Settings.from_env_and_kwargs(kwargs)

    log_activity({
        "component": "finn_jobs.main",
        "op": "start",
        "search_url": settings.search_url,
        "max_jobs": settings.max_jobs,
        "max_concurrency": settings.max_concurrency,
        "proxy": bool(settings.proxy_url),
        "skip_network": settings.skip_network,
    })

    if settings.skip_network:
        log_activity({"component": "finn_jobs.main", "op": "skipped", "reason": "skip_network"})
        return _meta("Skipped: skip_network is set", emitted=0, new_total=0)

    store = JobStore(settings.sqlite_path)
    client = HttpClient(timeout=settings.request_timeout, proxy_url=settings.proxy_url, pool_size=settings.max_concurrency)
    try:
        summary = crawl(
            settings.search_url,
            fetch=client.fetch,
            sink=store,
            max_jobs=settings.max_jobs,
            max_concurrency=settings.max_concurrency,
        )
    finally:
        client.close()

    if summary.seed_failed:
        log_error({
            "component": "finn_jobs.main",
            "op": "seed_failed",
            "search_url": settings.search_url,
            "errors": summary.errors[:5],
        })
        raise CrawlError(f"Search page could not be fetched: {settings.search_url}")

    new_total = len(summary.new_urls)
    msg = f"{summary.emitted} jobs scraped ({new_total} new) from {summary.listing_pages} search page(s)"
    meta = _meta(
        msg,
        emitted=summary.emitted,
        new_total=new_total,
        failed_requests=summary.failed_requests,
        rejected_requests=summary.rejected_requests,
        listing_pages=summary.listing_pages,
    )

    log_activity({"component": "finn_jobs.main", "op": "summary", **meta})

    if not summary.records:
        return meta

    table = render.build_table(summary.records, new_urls=summary.new_urls)
    html = render.wrap_document(table, heading="FINN jobs", intro=msg)
    return html, meta


def _meta(message: str, *, emitted: int, new_total: int, **counts: int) -> dict[str, Any]:
    return {
        "message": message,
        "subject": f"FINN jobs: {emitted} scraped, {new_total} new",
        "emitted": emitted,
        "new_total": new_total,
        "failed_requests": counts.get("failed_requests", 0),
        "rejected_requests": counts.get("rejected_requests", 0),
        "listing_pages": counts.get("listing_pages", 0),
    }
