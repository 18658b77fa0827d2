from __future__ import annotations

import logging
from collections.abc import Mapping

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import FetchError

LOG = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "nb-NO,nb;q=0.9,no;q=0.8,en;q=0.5",
}


class HttpClient:
    """Shared HTTP client for FINN pages: retries, timeouts, optional proxy."""

    def __init__(
        self,
        timeout: float = 15.0,
        user_agent: str = "FinnJobs/0.1 (+https://example.invalid)",
        proxy_url: str | None = None,
        pool_size: int = 10,
    ):
        self.timeout = float(timeout)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent, **DEFAULT_HEADERS})
        if proxy_url:
            self.session.proxies.update({"http": proxy_url, "https": proxy_url})

        retry = Retry(
            total=3,
            backoff_factor=0.5,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset(["GET", "HEAD"]),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=pool_size, pool_maxsize=max(pool_size, 20))
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def get_text(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> str:
        """GET and return decoded text; raises requests exceptions unchanged."""
        resp = self.session.get(url, headers=headers, timeout=timeout or self.timeout)
        resp.raise_for_status()
        if not resp.encoding and resp.apparent_encoding:
            resp.encoding = resp.apparent_encoding
        return resp.text

    def fetch(self, url: str) -> str:
        """GET a page for the crawler; any network or HTTP failure becomes FetchError."""
        try:
            return self.get_text(url)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise FetchError(url, f"HTTP {status}") from e
        except requests.RequestException as e:
            raise FetchError(url, e.__class__.__name__) from e

    def close(self) -> None:
        try:
            self.session.close()
        except Exception:
            LOG.debug("HttpClient.close() swallow", exc_info=True)
