"""
Crawl engine: drives the frontier through a thread pool until the frontier is
drained or the job budget is used up.

Each worker does exactly one request: host check, one fetch, one router call.
Only the main loop touches the frontier's queue order and the summary; the
budget and the emitter are shared with workers and carry their own locks.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from . import logging_bridge
from .budget import JobBudget
from .emitter import RecordEmitter, RecordSink
from .errors import ExtractionError, FetchError
from .frontier import Frontier
from .models import CrawlRequest, CrawlSummary, Label
from .router import Router

log = logging.getLogger(__name__)

Fetch = Callable[[str], str]

# worker outcomes
OK = "ok"
REJECTED = "rejected"
FETCH_FAILED = "fetch_failed"
EXTRACT_FAILED = "extract_failed"
CRASHED = "crashed"


@dataclass
class _Outcome:
    request: CrawlRequest
    status: str
    follow_ups: list[CrawlRequest] = field(default_factory=list)
    error: str | None = None


def _process(router: Router, fetch: Fetch, request: CrawlRequest) -> _Outcome:
    if not router.admit(request):
        return _Outcome(request, REJECTED)
    try:
        html = fetch(request.url)
    except FetchError as e:
        log.warning("Fetch failed for %s: %s", request.url, e.reason)
        return _Outcome(request, FETCH_FAILED, error=str(e))
    try:
        return _Outcome(request, OK, follow_ups=router.handle(request, html))
    except ExtractionError as e:
        log.warning("Skipping %s: %s", request.url, e)
        return _Outcome(request, EXTRACT_FAILED, error=str(e))
    except Exception as e:
        # one bad page must not take the crawl down
        log.exception("Handler failed for %s", request.url)
        return _Outcome(request, CRASHED, error=repr(e))


def crawl(
    seed_url: str,
    *,
    fetch: Fetch,
    sink: RecordSink,
    max_jobs: int,
    max_concurrency: int = 10,
    router_factory: Callable[[JobBudget, RecordEmitter], Router] = Router,
) -> CrawlSummary:
    """
    Crawl from one search URL and emit at most `max_jobs` records into `sink`.

    Never raises for per-request failures; a failed seed fetch is reported as
    summary.seed_failed with zero records.
    """
    start_ns = time.perf_counter_ns()
    budget = JobBudget(max_jobs)
    emitter = RecordEmitter(budget, sink)
    router = router_factory(budget, emitter)
    frontier = Frontier()
    summary = CrawlSummary(seed_url=seed_url)

    seed = CrawlRequest(url=seed_url, label=Label.LIST)
    frontier.add(seed)

    with ThreadPoolExecutor(max_workers=max(1, max_concurrency), thread_name_prefix="finn-jobs") as pool:
        in_flight: dict[Future[_Outcome], CrawlRequest] = {}
        while True:
            while not budget.exhausted and len(in_flight) < max_concurrency:
                request = frontier.pop()
                if request is None:
                    break
                in_flight[pool.submit(_process, router, fetch, request)] = request
            if not in_flight:
                break

            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            for fut in done:
                in_flight.pop(fut)
                outcome = fut.result()
                _record(summary, outcome, is_seed=outcome.request is seed)
                for follow_up in outcome.follow_ups:
                    frontier.add(follow_up)

    if budget.exhausted and len(frontier):
        log.info("Budget of %d reached; %d request(s) left unvisited", max_jobs, len(frontier))

    summary.records = list(emitter.records)
    summary.new_urls = list(emitter.new_urls)
    total_us = int((time.perf_counter_ns() - start_ns) // 1000)

    logging_bridge.activity({
        "component": "finn_jobs.engine",
        "op": "crawl",
        "seed_url": seed_url,
        "max_jobs": max_jobs,
        "emitted": summary.emitted,
        "new": len(summary.new_urls),
        "listing_pages": summary.listing_pages,
        "failed_requests": summary.failed_requests,
        "rejected_requests": summary.rejected_requests,
        "seed_failed": summary.seed_failed,
        "total_us": total_us,
    })
    return summary


def _record(summary: CrawlSummary, outcome: _Outcome, *, is_seed: bool) -> None:
    if outcome.status == OK:
        if outcome.request.label is Label.LIST:
            summary.listing_pages += 1
        return
    if outcome.status == REJECTED:
        summary.rejected_requests += 1
    else:
        summary.failed_requests += 1
    if outcome.error:
        summary.errors.append(f"{outcome.request.url}: {outcome.error}")
    if is_seed and outcome.status in (REJECTED, FETCH_FAILED, CRASHED):
        summary.seed_failed = True
