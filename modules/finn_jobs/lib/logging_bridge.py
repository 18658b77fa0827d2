from __future__ import annotations

import copy
import logging
from typing import Any

# Structured records go to the service's JSONL writer when the service package
# is importable; otherwise they land in stdlib logging. Silent on import.
try:
    from service import logging_utils as _logging_backend
except ImportError:
    _logging_backend = None

# Keys that should be redacted from structured logs
_REDACT_KEYS = {
    "password",
    "token",
    "apikey",
    "api_key",
    "secret",
    "authorization",
    "auth",
    "bearer",
    "proxy_url",
}


def _redact_record(record: dict[str, Any]) -> dict[str, Any]:
    """
    Shallow-copy record and redact obvious secret-like fields at top level.
    Proxy URLs are redacted too since they commonly embed credentials.
    """
    redacted = copy.copy(record)
    for k in list(redacted.keys()):
        lk = str(k).lower()
        if lk in _REDACT_KEYS or lk.endswith("_secret"):
            redacted[k] = "***REDACTED***"
    return redacted


def activity(record: dict[str, Any]) -> None:
    """
    Write an activity record through service.logging_utils if available.
    Falls back to stdlib logging as structured info.
    """
    payload = _redact_record(record)
    if _logging_backend is not None:
        try:
            _logging_backend.write_activity_log(payload)
            return
        except Exception:
            logging.getLogger(__name__).debug("activity log write failed", exc_info=True)
    logging.getLogger("finn_jobs.activity").info(payload)


def error(record: dict[str, Any]) -> None:
    """
    Write an error record through service.logging_utils if available.
    Falls back to stdlib logging as structured error.
    """
    payload = _redact_record(record)
    if _logging_backend is not None:
        try:
            _logging_backend.write_error_log(payload)
            return
        except Exception:
            logging.getLogger(__name__).debug("error log write failed", exc_info=True)
    logging.getLogger("finn_jobs.error").error(payload)
