from __future__ import annotations

import threading
from collections import deque
from urllib.parse import urlsplit, urlunsplit

from .models import CrawlRequest


def normalize_url(url: str) -> str:
    """Dedup key: lower-cased scheme/host, fragment dropped, path and query kept."""
    parts = urlsplit((url or "").strip())
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path or "/", parts.query, ""))


class Frontier:
    """FIFO of pending requests; a URL is accepted at most once per crawl."""

    def __init__(self) -> None:
        self._queue: deque[CrawlRequest] = deque()
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def add(self, request: CrawlRequest) -> bool:
        key = normalize_url(request.url)
        with self._lock:
            if key in self._seen:
                return False
            self._seen.add(key)
            self._queue.append(request)
            return True

    def pop(self) -> CrawlRequest | None:
        with self._lock:
            return self._queue.popleft() if self._queue else None

    def seen(self, url: str) -> bool:
        with self._lock:
            return normalize_url(url) in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)
