# service/scheduler.py
from __future__ import annotations

import logging
import os
import threading
import time as _time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from datetime import tzinfo as _dt_tzinfo
from typing import Any
from zoneinfo import ZoneInfo

import pytz
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.combining import OrTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from . import config_schema, runner
from .logging_utils import write_activity_log

LOG = logging.getLogger(__name__)

TRIGGER_KINDS = ("interval", "cron", "daily_time")


# ---- Internal structures ----------------------------------------------------


@dataclass(frozen=True, slots=True)
class JobSpec:
    id: str
    trigger: Any  # apscheduler.triggers.base.BaseTrigger
    module: str
    kwargs: dict[str, Any]
    timeout_sec: int | None
    max_instances: int
    coalesce: bool
    misfire_grace_time: int | None
    summary: str | None


# ---- Public controller ------------------------------------------------------


class SchedulerController:
    """
    A small façade around APScheduler so the CLI can manage lifecycle cleanly.
    """

    def __init__(self, scheduler: BackgroundScheduler) -> None:
        self._scheduler = scheduler
        self._stopped_evt = threading.Event()

    def stop(self) -> None:
        if self._scheduler.running:
            LOG.info("Shutting down scheduler...")
            # in-flight crawls are allowed to finish
            self._scheduler.shutdown(wait=False)
        self._stopped_evt.set()
        LOG.info("Scheduler shut down complete.")

    def join(self, timeout: float | None = None) -> bool:
        """
        Block until the scheduler is fully stopped (or timeout).
        Returns True if stopped before timeout, else False.
        """
        return self._stopped_evt.wait(timeout=timeout)

    def get_job_ids(self) -> Iterable[str]:
        return (job.id for job in self._scheduler.get_jobs())


# ---- Module API -------------------------------------------------------------


def build_scheduler(cfg: dict[str, Any]) -> BackgroundScheduler:
    """Create a (not yet started) scheduler with every valid job from cfg registered."""
    tz = _resolve_timezone(cfg)
    job_defaults = {
        "coalesce": True,  # run only the latest if many were missed
        "max_instances": 1,
    }
    scheduler = BackgroundScheduler(
        timezone=tz,
        job_defaults=job_defaults,
        executors={"default": ThreadPoolExecutor(_int_or(cfg.get("executor_workers"), 4))},
        jobstores={"default": MemoryJobStore()},
    )

    jobs_cfg = cfg.get("jobs", [])
    if not isinstance(jobs_cfg, list):
        raise ValueError("config.jobs must be a list")

    for raw in jobs_cfg:
        try:
            spec = make_job_spec(raw, default_job_defaults=job_defaults, tz=tz)
        except (ValueError, TypeError):
            LOG.exception("Skipping job due to config error: %r", raw)
            continue
        _add_job(scheduler, spec)
    return scheduler


def start(config_path: str | None = None) -> SchedulerController:
    """
    Load configuration, build an APScheduler instance, add jobs, and start.
    Returns a SchedulerController that exposes stop() and join().

    APScheduler 3.x prefers a pytz scheduler timezone; per-trigger timezones
    may be given as zone names and are coerced by APScheduler.
    """
    cfg = config_schema.load_config(config_path)
    scheduler = build_scheduler(cfg)
    scheduler.start()
    LOG.info("Scheduler started with %d job(s).", len(scheduler.get_jobs()))
    return SchedulerController(scheduler)


# ---- Helpers ----------------------------------------------------------------


def preview_trigger(trigger, tz, count: int = 6, start: datetime | None = None) -> list[datetime]:
    """
    Return the next `count` fire times.
    Deterministic: previous_fire_time = now = `start` (or "now" in tz), then
    `now` advances 1µs past each hit.
    """
    now = start or datetime.now(tz=tz)
    prev = now
    times = []
    for _ in range(count):
        nxt = trigger.get_next_fire_time(prev, now)
        if nxt is None:
            break
        times.append(nxt)
        prev = nxt
        now = nxt + timedelta(microseconds=1)
    return times


def _resolve_timezone(cfg: dict[str, Any]):
    """config['timezone'], else env TZ, else UTC; invalid names fall back to UTC."""
    tz_name = cfg.get("timezone") or os.getenv("TZ") or "UTC"
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        LOG.warning("Falling back to UTC timezone (invalid tz '%s')", tz_name)
        return pytz.UTC


def make_job_spec(raw: dict[str, Any], default_job_defaults: dict[str, Any], tz) -> JobSpec:
    """
    Convert a raw config job dict into a JobSpec with a built APScheduler trigger.

    The trigger may sit at job top-level or under "trigger": {...}.
    """
    jid = str(raw.get("id") or raw.get("name") or _require(raw, "module"))
    module = _require(raw, "module")

    trig_def = raw.get("trigger")
    if trig_def is None:
        trig_def = {k: raw[k] for k in TRIGGER_KINDS if k in raw}
    trigger = build_trigger(trig_def, tz)
    LOG.debug("Parsed trigger for job[%s]: %s", jid, trigger)

    return JobSpec(
        id=jid,
        trigger=trigger,
        module=module,
        kwargs=dict(raw.get("kwargs") or {}),
        timeout_sec=_int_or(raw.get("timeout_sec"), None),
        max_instances=_int_or(raw.get("max_instances"), default_job_defaults.get("max_instances", 1)),
        coalesce=bool(raw.get("coalesce", default_job_defaults.get("coalesce", True))),
        misfire_grace_time=_int_or(raw.get("misfire_grace_time"), None),
        summary=raw.get("summary") or raw.get("description"),
    )


def _tz(z):
    if not z:
        return None
    if isinstance(z, _dt_tzinfo):
        return z
    return ZoneInfo(str(z))


def build_trigger(trig_def: dict[str, Any], tz) -> Any:
    """
    Build an APScheduler trigger from a dict.

    Supported shapes:
      {"interval": {weeks|days|hours|minutes|seconds, jitter?, start_date?, end_date?, timezone?}}
      {"cron":     {second?, minute?, hour?, day?, day_of_week?, month?, jitter?, start_date?, end_date?, timezone?}}
      {"cron":     "*/15 * * * *"}  # crontab, scheduler tz
      {"daily_time": "HH:MM"}
      {"daily_time": {"time": "HH:MM[:SS]" | ["..."], "day_of_week"?: "...", "timezone"?: "..."}}

    A trigger block's own 'timezone' wins over the scheduler tz.
    """
    if not isinstance(trig_def, dict):
        raise ValueError("trigger spec must be a dict")

    default_tz = _tz(tz)

    present = [k for k in TRIGGER_KINDS if trig_def.get(k) is not None]
    if len(present) != 1:
        raise ValueError("exactly one of {'interval','cron','daily_time'} must be provided")
    kind = present[0]

    if kind == "interval":
        return _interval_trigger(trig_def["interval"], default_tz)
    if kind == "cron":
        return _cron_trigger(trig_def["cron"], default_tz)
    return _daily_time_trigger(trig_def["daily_time"], default_tz)


def _interval_trigger(spec: Any, default_tz) -> IntervalTrigger:
    if not isinstance(spec, dict):
        raise ValueError("interval must be an object with time fields")

    allowed = {"weeks", "days", "hours", "minutes", "seconds", "jitter", "timezone", "start_date", "end_date"}
    unknown = set(spec.keys()) - allowed
    if unknown:
        raise ValueError(f"interval has unknown field(s): {sorted(unknown)}")

    def _as_int_ge0(name: str) -> int:
        if name not in spec:
            return 0
        try:
            v = int(spec[name])
        except (TypeError, ValueError) as err:
            raise ValueError(f"interval.{name} must be an integer") from err
        if v < 0:
            raise ValueError(f"interval.{name} must be >= 0")
        return v

    iv = {k: _as_int_ge0(k) for k in ("weeks", "days", "hours", "minutes", "seconds")}
    if sum(iv.values()) == 0:
        raise ValueError("interval must be greater than 0 (provide at least one nonzero time field)")

    kwargs: dict[str, Any] = {k: v for k, v in iv.items() if v}
    jitter = _as_int_ge0("jitter")
    if jitter:
        kwargs["jitter"] = jitter
    for k in ("start_date", "end_date"):
        if k in spec:
            kwargs[k] = spec[k]
    return IntervalTrigger(timezone=_tz(spec.get("timezone")) or default_tz, **kwargs)


def _cron_trigger(cron_spec: Any, default_tz) -> CronTrigger:
    if isinstance(cron_spec, str):
        fields = cron_spec.strip().split()
        if len(fields) != 5:
            raise ValueError(f"cron string must have 5 fields (got {len(fields)}): {cron_spec!r}")
        return CronTrigger.from_crontab(cron_spec, timezone=default_tz)
    if not isinstance(cron_spec, dict):
        raise ValueError("cron must be a crontab string or an object")

    allowed = {"second", "minute", "hour", "day", "day_of_week", "month", "timezone", "start_date", "end_date", "jitter"}
    unknown = set(cron_spec.keys()) - allowed
    if unknown:
        raise ValueError(f"cron has unknown field(s): {sorted(unknown)}")

    return CronTrigger(
        second=cron_spec.get("second", 0),
        minute=cron_spec.get("minute", 0),
        hour=cron_spec.get("hour", 0),
        day=cron_spec.get("day"),
        day_of_week=cron_spec.get("day_of_week"),
        month=cron_spec.get("month"),
        start_date=cron_spec.get("start_date"),
        end_date=cron_spec.get("end_date"),
        jitter=cron_spec.get("jitter"),
        timezone=_tz(cron_spec.get("timezone")) or default_tz,
    )


def _parse_time(s: str) -> tuple[int, int, int]:
    parts = s.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"daily_time must be 'HH:MM' or 'HH:MM:SS', got {s!r}")
    try:
        hh, mm = int(parts[0]), int(parts[1])
        ss = int(parts[2]) if len(parts) == 3 else 0
    except ValueError as err:
        raise ValueError(f"daily_time must contain integers: {s!r}") from err
    time(hh, mm, ss)  # validates ranges
    return hh, mm, ss


def _daily_time_trigger(dtdef: Any, default_tz):
    if isinstance(dtdef, str):
        dtdef = {"time": dtdef}
    if not isinstance(dtdef, dict):
        raise ValueError("daily_time must be 'HH:MM' or an object")

    unknown = set(dtdef.keys()) - {"time", "day_of_week", "timezone"}
    if unknown:
        raise ValueError(f"daily_time has unknown field(s): {sorted(unknown)}")

    times = dtdef.get("time")
    if times is None:
        raise ValueError("daily_time requires 'time'")
    if isinstance(times, str):
        times = [times]
    if not isinstance(times, list):
        raise ValueError("daily_time.time must be a string or list of strings")

    tzinfo = _tz(dtdef.get("timezone")) or default_tz
    triggers = [
        CronTrigger(second=s, minute=m, hour=h, day_of_week=dtdef.get("day_of_week"), timezone=tzinfo)
        for h, m, s in sorted({_parse_time(str(t)) for t in times})
    ]
    return triggers[0] if len(triggers) == 1 else OrTrigger(triggers)


def _add_job(scheduler: BackgroundScheduler, spec: JobSpec) -> None:
    """
    Register the job with a wrapper that logs start/finish, writes one
    activity record, and runs the module via runner.run_module_once().
    """

    def _job_wrapper():
        started = _time.monotonic()
        LOG.info("Job[%s] starting (module=%s)", spec.id, spec.module)
        try:
            result, run_id = runner.run_module_once(
                spec.module,
                kwargs=dict(spec.kwargs or {}),
                timeout_sec=spec.timeout_sec,
                trigger_type="scheduled",
                job_context=_build_job_context(spec),
            )
        except Exception:
            LOG.exception("Job[%s] raised an exception.", spec.id)
            _write_activity(spec, status="error", duration_s=_time.monotonic() - started)
            return

        duration = _time.monotonic() - started
        LOG.info("Job[%s] finished in %.3fs: %s", spec.id, duration, result.message)
        _write_activity(spec, status="ok", duration_s=duration, run_id=run_id)

    if os.getenv("SCHEDULER_PREVIEW") == "1":
        preview = preview_trigger(spec.trigger, scheduler.timezone, count=int(os.getenv("SCHEDULER_PREVIEW_COUNT", "6")))
        LOG.info("Preview[%s]: %s", spec.id, ", ".join(t.isoformat() for t in preview) or "(none)")

    scheduler.add_job(
        func=_job_wrapper,
        trigger=spec.trigger,
        id=spec.id,
        name=spec.summary or spec.id,
        max_instances=spec.max_instances,
        coalesce=spec.coalesce,
        misfire_grace_time=spec.misfire_grace_time,
        replace_existing=True,
    )
    LOG.info(
        "Registered job[%s] (module=%s, trigger=%s, max_instances=%s, coalesce=%s)",
        spec.id,
        spec.module,
        spec.trigger,
        spec.max_instances,
        spec.coalesce,
    )


def _write_activity(spec: JobSpec, status: str, duration_s: float, run_id: str | None = None) -> None:
    """Activity logging is best-effort; a failed write never fails the job."""
    try:
        write_activity_log({
            "ts": datetime.now(timezone.utc).isoformat(),
            "source": "scheduler",
            "event": "job_run",
            "fields": {
                "job_id": spec.id,
                "module": spec.module,
                "status": status,
                "run_id": run_id,
                "duration_ms": int(duration_s * 1000),
                "summary": spec.summary,
            },
        })
    except OSError:
        LOG.debug("write_activity_log failed for job[%s]", spec.id, exc_info=True)


def _require(d: dict[str, Any], key: str) -> Any:
    if key not in d or d[key] in (None, ""):
        raise ValueError(f"Missing required key: {key}")
    return d[key]


def _int_or(v: Any, default: int | None) -> int | None:
    """Return int(v) or default if v is None/invalid (lenient for config)."""
    try:
        return int(v) if v is not None else default
    except (TypeError, ValueError):
        return default


def _build_job_context(spec: JobSpec) -> dict[str, Any]:
    return {
        "job_id": spec.id,
        "module": spec.module,
        "summary": spec.summary,
        "now_iso": datetime.now(timezone.utc).isoformat(),
    }
