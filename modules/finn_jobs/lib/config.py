from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from .utils import truthy

DEFAULT_SEARCH_URL = "https://www.finn.no/job/fulltime/search.html?occupation=0.23&occupation=0.22"
DEFAULT_SQLITE_PATH = "/app/local/state/finn_jobs.db"
MAX_JOBS_LIMIT = 1000


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env cannot form a valid Settings."""


# -----------------------------
# Model
# -----------------------------
@dataclass(frozen=True)
class Settings:
    """Canonical configuration for a 'finn_jobs' run."""

    search_url: str = DEFAULT_SEARCH_URL
    max_jobs: int = 100
    max_concurrency: int = 10

    sqlite_path: str = DEFAULT_SQLITE_PATH
    request_timeout: float = 15.0
    proxy_url: str | None = None
    skip_network: bool = False

    @classmethod
    def from_env_and_kwargs(cls, kwargs: Mapping[str, Any] | None) -> Settings:
        """
        Build Settings from kwargs with validation.

        Expected kwargs (all optional):

            search_url: str = DEFAULT_SEARCH_URL   # http(s) on finn.no
            max_jobs: int = 100                    # 1..1000
            max_concurrency: int = 10
            sqlite_path: str                       # else $FINN_JOBS_SQLITE_PATH, else DEFAULT_SQLITE_PATH
            request_timeout: float = 15
            proxy_url: str                         # else $FINN_JOBS_PROXY_URL
            skip_network: bool = false
        """
        kw = dict(kwargs or {})

        search_url = str(kw.get("search_url") or DEFAULT_SEARCH_URL).strip()
        max_jobs = _as_int(kw.get("max_jobs"), 100, "max_jobs")
        max_concurrency = _as_int(kw.get("max_concurrency"), 10, "max_concurrency")
        try:
            request_timeout = float(kw.get("request_timeout") or 15.0)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"'request_timeout' must be a number, got {kw.get('request_timeout')!r}") from e

        sqlite_path = str(kw.get("sqlite_path") or os.getenv("FINN_JOBS_SQLITE_PATH") or DEFAULT_SQLITE_PATH)
        proxy_url = str(kw.get("proxy_url") or os.getenv("FINN_JOBS_PROXY_URL") or "").strip() or None

        settings = cls(
            search_url=search_url,
            max_jobs=max_jobs,
            max_concurrency=max_concurrency,
            sqlite_path=sqlite_path,
            request_timeout=request_timeout,
            proxy_url=proxy_url,
            skip_network=truthy(kw.get("skip_network")),
        )
        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _as_int(value: Any, default: int, name: str) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ConfigError(f"'{name}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{name}' must be an integer, got {value!r}") from e


def _validate_settings(s: Settings) -> None:
    parts = urlsplit(s.search_url)
    host = (parts.hostname or "").lower()
    if parts.scheme not in ("http", "https"):
        raise ConfigError(f"'search_url' must be an http(s) URL, got {s.search_url!r}")
    if host != "finn.no" and not host.endswith(".finn.no"):
        raise ConfigError(f"'search_url' must point at finn.no, got host {host!r}")

    if not 1 <= s.max_jobs <= MAX_JOBS_LIMIT:
        raise ConfigError(f"'max_jobs' must be between 1 and {MAX_JOBS_LIMIT}.")
    if s.max_concurrency <= 0:
        raise ConfigError("'max_concurrency' must be >= 1.")
    if s.request_timeout <= 0:
        raise ConfigError("'request_timeout' must be > 0.")
    if not s.sqlite_path.strip():
        raise ConfigError("'sqlite_path' cannot be empty.")
    if s.proxy_url and urlsplit(s.proxy_url).scheme not in ("http", "https"):
        raise ConfigError(f"'proxy_url' has an unsupported scheme: {s.proxy_url!r}")
