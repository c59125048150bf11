from __future__ import annotations

import json
import logging
import sys

from watchtrack.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(level: int = logging.INFO, msg: str = "hello", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test",
        level=level,
        pathname="svc.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_noisy_loggers_at_debug() -> None:
    setup_logging("debug")
    assert logging.getLogger("uvicorn").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_allows_uvicorn_at_error() -> None:
    setup_logging("error")
    assert logging.getLogger("uvicorn").level == logging.ERROR


def test_setup_logging_json_uses_json_formatter() -> None:
    setup_logging("info", json_format=True)
    handler = logging.getLogger().handlers[0]
    assert isinstance(handler.formatter, _JsonFormatter)
    setup_logging("info")


def test_formatter_excludes_location_for_info() -> None:
    output = _ContainerFormatter().format(_record())
    assert "hello" in output
    assert "[svc.py:" not in output


def test_formatter_includes_location_for_warning() -> None:
    output = _ContainerFormatter().format(_record(logging.WARNING, "bad thing"))
    assert "bad thing" in output
    assert "[svc.py:42]" in output


def test_json_formatter_promotes_progress_fields() -> None:
    output = _JsonFormatter().format(
        _record(user_id="viewer-1", media_id=42, media_type="movie", request_id="r-1")
    )
    entry = json.loads(output)
    assert entry["message"] == "hello"
    assert entry["level"] == "INFO"
    assert entry["user_id"] == "viewer-1"
    assert entry["media_id"] == 42
    assert entry["media_type"] == "movie"
    assert entry["request_id"] == "r-1"


def test_json_formatter_omits_missing_fields() -> None:
    entry = json.loads(_JsonFormatter().format(_record()))
    assert "user_id" not in entry
    assert "exception" not in entry


def test_json_formatter_includes_exception() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record(logging.ERROR, "failed")
        record.exc_info = sys.exc_info()
    entry = json.loads(_JsonFormatter().format(record))
    assert "RuntimeError: boom" in entry["exception"]
