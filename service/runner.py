# service/runner.py
from __future__ import annotations

import importlib
import json
import logging
import os
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from service import logging_utils

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def now_iso() -> str:
    return datetime.now(timezone.utc).astimezone().isoformat(timespec="seconds")


def _maybe_number(v: Any) -> Any:
    if isinstance(v, str):
        s = v.strip()
        if s and (s.isdigit() or (s.startswith("-") and s[1:].isdigit())):
            return int(s)
        try:
            return float(s)
        except ValueError:
            pass
    return v


def _maybe_bool(v: Any) -> Any:
    if isinstance(v, str):
        low = v.strip().lower()
        if low in ("true", "t", "yes", "y", "on"):
            return True
        if low in ("false", "f", "no", "n", "off"):
            return False
    return v


def _normalize_kwargs_types(kwargs: dict[str, object] | None) -> dict[str, object]:
    """
    Normalize job kwargs:

      • For keys ending with "_env":
          - Treat the string value as an ENV VAR NAME (e.g., "FINN_PROXY").
          - Replace with os.getenv(<name>, "") under the key without the suffix
            (proxy_url_env -> proxy_url).

      • For all other keys:
          - If a string looks like JSON ({...} or [...]), parse it.
          - Else coerce number, then bool string forms ("10" -> 10, "yes" -> True).
          - Leave non-strings unchanged.

    This runs right before module.run(**kwargs).
    """
    if not kwargs:
        return {}

    normalized: dict[str, object] = {}
    for k, v in kwargs.items():
        if isinstance(k, str) and k.endswith("_env") and isinstance(v, str):
            target = k[: -len("_env")]
            value = os.getenv(v.strip(), "")
            # explicit kwargs win over env-derived ones
            if value and target not in kwargs:
                normalized[target] = value
            continue

        if isinstance(v, str):
            s = v.strip()
            if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
                try:
                    normalized[k] = json.loads(s)
                    continue
                except json.JSONDecodeError:
                    pass
            normalized[k] = _maybe_bool(_maybe_number(s))
        else:
            normalized[k] = v

    return normalized


def _resolve_callable(module_path: str) -> Callable[..., Any]:
    """
    Import module and return its `run` callable.

    A package path ("modules.finn_jobs") resolves to its `main` submodule.
    """
    mod = importlib.import_module(module_path)
    if not callable(getattr(mod, "run", None)):
        try:
            mod = importlib.import_module(f"{module_path}.main")
        except ModuleNotFoundError as e:
            if e.name != f"{module_path}.main":
                raise
    if not callable(getattr(mod, "run", None)):
        raise AttributeError(f"Module {module_path!r} does not define a callable `run(**kwargs)`.")
    return mod.run  # type: ignore[no-any-return]


def _emit_activity(record: dict[str, Any]) -> None:
    try:
        logging_utils.write_activity_log(record)
    except Exception as e:
        log.error("Failed to write activity JSONL: %s", e)


@dataclass
class RunResult:
    ok: bool
    message: str
    html: str | None = None
    meta: dict[str, Any] | None = None
    subject: str | None = None


def _coerce_result(value: Any) -> RunResult:
    """
    Normalize module return into a RunResult.

    Acceptable shapes:
      - str                          -> HTML
      - None                         -> no output
      - (str, dict)                  -> HTML + meta (may include 'message', 'subject')
      - {'html': str, 'meta': dict}  -> convenience wrapper
      - dict                         -> treated as meta-only (no HTML)
    """
    if value is None:
        return RunResult(ok=True, message="OK")

    if isinstance(value, str):
        return RunResult(ok=True, message="OK", html=value)

    if isinstance(value, dict) and "html" not in value:
        return RunResult(ok=True, message=value.get("message", "OK"), meta=value, subject=value.get("subject"))

    if isinstance(value, dict):
        html = value.get("html") if isinstance(value.get("html"), str) else None
        meta = value.get("meta") if isinstance(value.get("meta"), dict) else {}
        return RunResult(
            ok=True,
            message=meta.get("message", "OK"),
            html=html,
            meta=meta or None,
            subject=meta.get("subject"),
        )

    if isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], str) and isinstance(value[1], dict):
        meta = value[1]
        return RunResult(
            ok=True,
            message=meta.get("message", "OK"),
            html=value[0],
            meta=meta,
            subject=meta.get("subject"),
        )

    raise TypeError("Module return must be one of: str, None, dict, (str, dict), or {'html':..., 'meta':...}")


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------
def run_module_once(
    module: str,
    kwargs: dict[str, object] | None = None,
    trigger_type: str = "scheduled",
    job_context: dict[str, object] | None = None,  # e.g., {"job_id": "...", "summary": "..."}
    timeout_sec: int | None = None,
) -> tuple[RunResult, str]:
    """
    Execute a module's run(**kwargs) once and write one activity record.

    Returns:
        (RunResult, run_id)
    Raises:
        Propagates exceptions from module execution (caller/CLI will catch and log),
        or TimeoutError when timeout_sec elapses first.
    """
    run_id = uuid.uuid4().hex
    context: dict[str, Any] = {
        "run_id": run_id,
        "module": module,
        "trigger_type": trigger_type,
        "started_at": now_iso(),
    }
    if job_context:
        context.update({k: v for k, v in job_context.items() if k not in context})

    kw = _normalize_kwargs_types(kwargs)
    run_callable = _resolve_callable(module)

    exc: Exception | None = None
    t0 = datetime.now()
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="runner")
    try:
        fut = pool.submit(run_callable, **kw)
        value = fut.result(timeout=timeout_sec) if timeout_sec else fut.result()
        result = _coerce_result(value)
    except FutureTimeout:
        exc = TimeoutError(f"Module run timed out after {timeout_sec}s")
        result = RunResult(ok=False, message=str(exc), meta={"timeout_sec": timeout_sec})
    except Exception as e:
        exc = e
        result = RunResult(ok=False, message=str(e), meta={"exception_type": type(e).__name__})
    finally:
        # don't block on a timed-out worker; it finishes in the background
        pool.shutdown(wait=not isinstance(exc, TimeoutError))
    duration_ms = int((datetime.now() - t0).total_seconds() * 1000)

    _emit_activity({
        "ts": now_iso(),
        "run_id": run_id,
        "module": module,
        "trigger_type": trigger_type,
        "ok": result.ok,
        "message": result.message,
        "subject": result.subject,
        "duration_ms": duration_ms,
        "has_html": bool(result.html),
        "context": context,
        "kwargs": kw,
        "meta": result.meta or {},
    })

    if exc:
        raise exc

    return result, run_id
