# tests/test_router.py
import logging

import pytest

from modules.finn_jobs.lib.budget import JobBudget
from modules.finn_jobs.lib.emitter import RecordEmitter
from modules.finn_jobs.lib.listing import ListingPage
from modules.finn_jobs.lib.models import CrawlRequest, JobRecord, Label
from modules.finn_jobs.lib.router import Router, classify_url, is_target_host, plan_listing

from finn_fakes import SEARCH_URL, ListSink, detail_url, detail_html, listing_html

PAGE_2 = "https://www.finn.no/job/fulltime/search.html?page=2"
FIVE = ListingPage(detail_urls=tuple(detail_url(i) for i in range(1, 6)), pagination_urls=(PAGE_2,))


def _router(target=10, sink=None):
    budget = JobBudget(target)
    return Router(budget, RecordEmitter(budget, sink or ListSink())), budget


# ----------------------------------------------------------------------
# plan_listing
# ----------------------------------------------------------------------
def test_plan_listing_takes_only_remaining_detail_links():
    out = plan_listing(FIVE, 2)
    assert [r.url for r in out] == [detail_url(1), detail_url(2)]
    assert all(r.label is Label.DETAIL for r in out)


def test_plan_listing_follows_pagination_when_page_cannot_fill_budget():
    out = plan_listing(FIVE, 10)
    assert [r.label for r in out] == [Label.DETAIL] * 5 + [Label.LIST]
    assert out[-1].url == PAGE_2


def test_plan_listing_exact_fit_skips_pagination():
    out = plan_listing(FIVE, 5)
    assert len(out) == 5
    assert Label.LIST not in {r.label for r in out}


@pytest.mark.parametrize("remaining", [0, -3])
def test_plan_listing_nothing_remaining(remaining):
    assert plan_listing(FIVE, remaining) == []


def test_plan_listing_empty_page_with_pagination():
    out = plan_listing(ListingPage(detail_urls=(), pagination_urls=(PAGE_2,)), 3)
    assert out == [CrawlRequest(url=PAGE_2, label=Label.LIST)]


# ----------------------------------------------------------------------
# host check / classification
# ----------------------------------------------------------------------
@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://www.finn.no/job/fulltime/search.html", True),
        ("https://finn.no/", True),
        ("https://WWW.FINN.NO/x", True),
        ("https://notfinn.no/", False),
        ("https://finn.no.evil.example/", False),
        ("not a url", False),
    ],
)
def test_is_target_host(url, expected):
    assert is_target_host(url) is expected


@pytest.mark.parametrize(
    "url, kind",
    [
        ("https://example.com/job/ad/1", "foreign"),
        (detail_url(1), "detail"),
        (SEARCH_URL, "listing"),
        ("https://www.finn.no/", "other"),
    ],
)
def test_classify_url(url, kind):
    assert classify_url(url) == kind


def test_admit_rejects_foreign_host(caplog):
    router, _ = _router()
    with caplog.at_level(logging.WARNING, logger="modules.finn_jobs.lib.router"):
        assert not router.admit(CrawlRequest(url="https://evil.example/job/ad/1", label=Label.DETAIL))
    assert "foreign host" in caplog.text
    assert router.admit(CrawlRequest(url=detail_url(1), label=Label.DETAIL))


# ----------------------------------------------------------------------
# handle
# ----------------------------------------------------------------------
def test_unlabeled_request_is_logged_and_dropped(caplog):
    router, budget = _router()
    req = CrawlRequest.from_raw(detail_url(1), "bogus")
    assert req.label is None
    with caplog.at_level(logging.WARNING, logger="modules.finn_jobs.lib.router"):
        assert router.handle(req, detail_html("X")) == []
    assert "Unlabeled request (detail url)" in caplog.text
    assert budget.scraped == 0


def test_handle_listing_uses_budget_remaining():
    router, _ = _router(target=2)
    req = CrawlRequest(url=SEARCH_URL, label=Label.LIST)
    out = router.handle(req, listing_html([1, 2, 3], next_pages=["?page=2"]))
    assert [r.url for r in out] == [detail_url(1), detail_url(2)]


def test_handle_detail_emits_record():
    sink = ListSink()
    router, budget = _router(sink=sink)
    out = router.handle(CrawlRequest(url=detail_url(7), label=Label.DETAIL), detail_html("Kokk"))
    assert out == []
    assert [r.title for r in sink.records] == ["Kokk"]
    assert budget.scraped == 1


def test_custom_extractors_are_used():
    budget = JobBudget(1)
    sink = ListSink()
    router = Router(
        budget,
        RecordEmitter(budget, sink),
        detail_extractor=lambda url, html: JobRecord(url=url, title=html, description="", company="C"),
    )
    router.handle(CrawlRequest(url=detail_url(8), label=Label.DETAIL), "stub-title")
    assert sink.records[0].title == "stub-title"


def test_crawl_request_from_raw():
    assert CrawlRequest.from_raw("u", "list").label is Label.LIST
    assert CrawlRequest.from_raw("u", " Detail ").label is Label.DETAIL
    assert CrawlRequest.from_raw("u", Label.DETAIL).label is Label.DETAIL
    assert CrawlRequest.from_raw("u", None).label is None
