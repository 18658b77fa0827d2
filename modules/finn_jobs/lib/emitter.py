from __future__ import annotations

import logging
import threading
from typing import Any, Protocol

from .budget import JobBudget
from .models import JobRecord

log = logging.getLogger(__name__)


class RecordSink(Protocol):
    def append(self, record: JobRecord) -> Any: ...


class RecordEmitter:
    """
    Hands complete records to the sink, counting each against the budget.

    A record is emitted only after a budget slot is reserved; the slot is
    committed once sink.append() returns and released if it raises. A URL is
    emitted at most once.
    """

    def __init__(self, budget: JobBudget, sink: RecordSink) -> None:
        self.budget = budget
        self.sink = sink
        self.records: list[JobRecord] = []
        self.new_urls: list[str] = []
        self._urls: set[str] = set()
        self._lock = threading.Lock()

    def _claim(self, url: str) -> bool:
        with self._lock:
            if url in self._urls:
                return False
            self._urls.add(url)
            return True

    def _unclaim(self, url: str) -> None:
        with self._lock:
            self._urls.discard(url)

    def emit(self, record: JobRecord) -> bool:
        if not self._claim(record.url):
            log.debug("Already emitted: %s", record.url)
            return False
        if not self.budget.try_reserve():
            self._unclaim(record.url)
            log.debug("Budget exhausted, not emitting %s", record.url)
            return False
        try:
            is_new = self.sink.append(record)
        except Exception:
            self.budget.release()
            self._unclaim(record.url)
            raise
        self.budget.commit()
        with self._lock:
            self.records.append(record)
            # plain list-like sinks return None; only an explicit False means "seen before"
            if is_new is not False:
                self.new_urls.append(record.url)
        log.info("Emitted %s (%s)", record.title, record.url)
        return True

    @property
    def emitted(self) -> int:
        with self._lock:
            return len(self.records)
