# tests/finn_fakes.py
"""Offline stand-ins for finn.no: a page map with a fetch(), a list sink, HTML builders."""

import threading

from modules.finn_jobs.lib.errors import FetchError

SEARCH_URL = "https://www.finn.no/job/fulltime/search.html?occupation=0.23"


class FakeSite:
    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.fetched = []
        self._lock = threading.Lock()

    def fetch(self, url: str) -> str:
        with self._lock:
            self.fetched.append(url)
        if url not in self.pages:
            raise FetchError(url, "HTTP 404")
        return self.pages[url]


class ListSink:
    """In-memory record sink with JobStore's append contract."""

    def __init__(self):
        self.records = []
        self._lock = threading.Lock()

    def append(self, record) -> bool:
        with self._lock:
            is_new = all(r.url != record.url for r in self.records)
            self.records.append(record)
        return is_new


def detail_url(code: int) -> str:
    return f"https://www.finn.no/job/fulltime/ad.html?finnkode={code}"


def listing_html(codes, next_pages=()) -> str:
    cards = "".join(
        f'<div class="ads__unit"><a class="ads__unit__link" href="/job/fulltime/ad.html?finnkode={c}">Job {c}</a></div>'
        for c in codes
    )
    pages = "".join(f'<a class="pagination__page" href="{p}">{i + 2}</a>' for i, p in enumerate(next_pages))
    return f"<html><body><main>{cards}</main><nav>{pages}</nav></body></html>"


def detail_html(title: str, company: str = "Acme AS") -> str:
    return f"""
    <html><body>
      <h1 class="t1">{title}</h1>
      <p>{company}</p>
      <section aria-label="Jobbdetaljer"><p>Vi søker en utvikler.</p></section>
      <dl><dt>Sted</dt><dd>Oslo</dd></dl>
    </body></html>
    """
