# tests/finn_live/test_finn_live.py
from __future__ import annotations

import os

import pytest

from modules.finn_jobs.lib.config import DEFAULT_SEARCH_URL
from modules.finn_jobs.lib.engine import crawl
from modules.finn_jobs.lib.http_client import HttpClient


class _Collect:
    def __init__(self):
        self.records = []

    def append(self, record):
        self.records.append(record)
        return True


def _print_records(records) -> None:
    print(f"\n[finn] records: {len(records)}")
    for r in records:
        print(f"  • {r.title} / {r.company}  [{r.url}]")
        for c in r.contact_persons:
            print(f"      contact: {c.name} {c.phone_number or ''} {c.email or ''}")


@pytest.mark.live
def test_finn_search_live_small_budget():
    """
    Live smoke test: crawl a handful of real postings from the default search.
    Override with FINN_LIVE_SEARCH_URL / FINN_LIVE_MAX_JOBS.
    """
    url = os.getenv("FINN_LIVE_SEARCH_URL") or DEFAULT_SEARCH_URL
    max_jobs = int(os.getenv("FINN_LIVE_MAX_JOBS") or 5)

    client = HttpClient(timeout=20)
    sink = _Collect()
    try:
        summary = crawl(url, fetch=client.fetch, sink=sink, max_jobs=max_jobs, max_concurrency=3)
    finally:
        client.close()

    _print_records(summary.records)
    assert not summary.seed_failed, summary.errors
    assert 0 < summary.emitted <= max_jobs
    assert len({r.url for r in summary.records}) == summary.emitted
    for r in summary.records:
        assert r.title
        assert r.url.startswith("https://www.finn.no/")
