# tests/test_budget_frontier.py
import threading

import pytest

from modules.finn_jobs.lib.budget import JobBudget
from modules.finn_jobs.lib.emitter import RecordEmitter
from modules.finn_jobs.lib.frontier import Frontier, normalize_url
from modules.finn_jobs.lib.models import CrawlRequest, JobRecord, Label

from finn_fakes import ListSink, detail_url


def _rec(i):
    return JobRecord(url=detail_url(i), title=f"Job {i}", description="", company="Acme AS")


# ----------------------------------------------------------------------
# JobBudget
# ----------------------------------------------------------------------
def test_budget_reserve_commit_release():
    b = JobBudget(2)
    assert b.try_reserve() and b.try_reserve()
    assert not b.try_reserve()
    assert b.remaining == 0 and not b.exhausted
    b.release()
    b.commit()
    assert b.scraped == 1 and b.remaining == 1
    assert b.try_reserve()
    b.commit()
    assert b.exhausted


def test_budget_settle_without_reservation_raises():
    b = JobBudget(1)
    with pytest.raises(RuntimeError):
        b.commit()
    with pytest.raises(RuntimeError):
        b.release()


def test_negative_budget_rejected():
    with pytest.raises(ValueError):
        JobBudget(-1)


def test_concurrent_emitters_never_exceed_target():
    budget = JobBudget(3)
    sink = ListSink()
    emitter = RecordEmitter(budget, sink)
    start = threading.Barrier(10)

    def worker(i):
        start.wait()
        emitter.emit(_rec(i))

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert budget.scraped == 3
    assert len(sink.records) == 3
    assert emitter.emitted == 3


# ----------------------------------------------------------------------
# RecordEmitter
# ----------------------------------------------------------------------
class _FailingSink:
    def append(self, record):
        raise RuntimeError("disk full")


def test_emitter_releases_slot_when_sink_fails():
    budget = JobBudget(1)
    emitter = RecordEmitter(budget, _FailingSink())
    with pytest.raises(RuntimeError, match="disk full"):
        emitter.emit(_rec(1))
    assert budget.remaining == 1
    assert emitter.records == []

    # the same URL can be emitted once a working sink is in place
    emitter.sink = ListSink()
    assert emitter.emit(_rec(1))
    assert budget.exhausted


def test_emitter_skips_duplicate_url():
    emitter = RecordEmitter(JobBudget(5), ListSink())
    assert emitter.emit(_rec(1))
    assert not emitter.emit(_rec(1))
    assert emitter.emitted == 1


def test_emitter_tracks_new_urls_from_sink_result():
    class SeenSink:
        def append(self, record):
            return record.url != detail_url(2)

    emitter = RecordEmitter(JobBudget(5), SeenSink())
    for i in (1, 2, 3):
        emitter.emit(_rec(i))
    assert emitter.new_urls == [detail_url(1), detail_url(3)]
    assert emitter.emitted == 3


# ----------------------------------------------------------------------
# Frontier
# ----------------------------------------------------------------------
def test_normalize_url():
    assert normalize_url("HTTPS://WWW.Finn.no/job/ad/1#top") == "https://www.finn.no/job/ad/1"
    assert normalize_url("https://www.finn.no") == "https://www.finn.no/"
    assert normalize_url("https://www.finn.no/Job?a=1") == "https://www.finn.no/Job?a=1"


def test_frontier_is_fifo_and_deduplicates():
    f = Frontier()
    assert f.add(CrawlRequest(url="https://www.finn.no/a", label=Label.LIST))
    assert f.add(CrawlRequest(url="https://www.finn.no/b", label=Label.DETAIL))
    assert not f.add(CrawlRequest(url="https://WWW.FINN.NO/a#frag", label=Label.DETAIL))
    assert len(f) == 2

    assert f.pop().url == "https://www.finn.no/a"
    assert f.pop().url == "https://www.finn.no/b"
    assert f.pop() is None
    # popped URLs stay seen
    assert f.seen("https://www.finn.no/a")
    assert not f.add(CrawlRequest(url="https://www.finn.no/a", label=Label.LIST))
