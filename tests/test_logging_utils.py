import json
import logging
import os

from modules.finn_jobs.lib import logging_bridge
from service import logging_utils


def _read(path):
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def test_paths_use_prefix_and_date(frozen_utc):
    assert logging_utils.get_activity_log_path().endswith("activity-test-2025-01-01.jsonl")
    assert logging_utils.get_error_log_path().endswith("error-test-2025-01-01.jsonl")
    assert logging_utils.get_activity_log_path().startswith(os.environ["LOG_DIR"])


def test_write_activity_redacts_and_adds_metadata():
    record = {
        "op": "start",
        "proxy_url": "http://user:pw@proxy.local:3128",
        "nested": {"api_token": "abc", "ok": 1},
        "headers": ["Bearer abc123"],
    }
    logging_utils.write_activity_log(record)

    (line,) = _read(logging_utils.get_activity_log_path())
    assert line["proxy_url"] == "***REDACTED***"
    assert line["nested"] == {"api_token": "***REDACTED***", "ok": 1}
    assert line["headers"] == ["Bearer ***REDACTED***"]
    assert line["_meta"]["pid"] == os.getpid()
    # caller's dict is untouched
    assert record["proxy_url"].startswith("http://user")


def test_error_log_is_separate_file():
    logging_utils.write_error_log({"op": "append", "error": "boom"})
    assert _read(logging_utils.get_error_log_path())[0]["error"] == "boom"
    assert not os.path.exists(logging_utils.get_activity_log_path())


def test_size_rotation(monkeypatch):
    monkeypatch.setenv("ACTIVITY_LOG_MAX_BYTES", "10")
    logging_utils.write_activity_log({"n": 1})
    logging_utils.write_activity_log({"n": 2})
    names = os.listdir(os.environ["LOG_DIR"])
    assert len(names) == 2
    assert _read(logging_utils.get_activity_log_path())[0]["n"] == 2


def test_bridge_writes_through_service_backend():
    logging_bridge.activity({"component": "finn_jobs.test", "op": "ping", "proxy_url": "http://x"})
    (line,) = _read(logging_utils.get_activity_log_path())
    assert line["op"] == "ping"
    assert line["proxy_url"] == "***REDACTED***"


def test_bridge_falls_back_to_stdlib_logging(monkeypatch, caplog):
    monkeypatch.setattr(logging_bridge, "_logging_backend", None)
    with caplog.at_level(logging.INFO):
        logging_bridge.activity({"op": "ping", "password": "hunter2"})
        logging_bridge.error({"op": "fail"})
    assert "hunter2" not in caplog.text
    assert any(r.name == "finn_jobs.activity" for r in caplog.records)
    assert any(r.name == "finn_jobs.error" and r.levelno == logging.ERROR for r in caplog.records)


def test_redact_with_custom_keys():
    out = logging_utils.redact({"cookie": "a", "sqlite_path": "/x.db", "inner": {"sqlite_path": "/y"}}, {"sqlite"})
    assert out == {"cookie": "a", "sqlite_path": "***REDACTED***", "inner": {"sqlite_path": "***REDACTED***"}}
