from __future__ import annotations

import json
import logging
import sys

from coursetrack.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(level: int, msg: str = "hello", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="coursetrack.test",
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


def test_setup_logging_quiets_third_party_loggers() -> None:
    setup_logging("debug")
    assert logging.getLogger("uvicorn").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    setup_logging("error")
    assert logging.getLogger("httpx").level == logging.ERROR


def test_setup_logging_selects_json_formatter() -> None:
    setup_logging("info", json_format=True)
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, _JsonFormatter)

    setup_logging("info")
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, _ContainerFormatter)


def test_container_formatter_adds_location_from_warning_up() -> None:
    fmt = _ContainerFormatter()

    assert "[svc.py:" not in fmt.format(_record(logging.INFO))
    assert "[svc.py:42]" in fmt.format(_record(logging.WARNING, "bad thing"))
    assert "[svc.py:42]" in fmt.format(_record(logging.ERROR, "broke"))


def test_json_formatter_carries_context_fields() -> None:
    record = _record(
        logging.INFO,
        "progress saved",
        request_id="abc-123",
        user_id="s1",
        video_id="v1",
        duration_ms=12.5,
    )

    parsed = json.loads(_JsonFormatter().format(record))

    assert parsed["message"] == "progress saved"
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "coursetrack.test"
    assert parsed["request_id"] == "abc-123"
    assert parsed["user_id"] == "s1"
    assert parsed["video_id"] == "v1"
    assert parsed["duration_ms"] == 12.5
    assert "course_id" not in parsed


def test_json_formatter_includes_exception_info() -> None:
    try:
        raise ValueError("test error")
    except ValueError:
        record = _record(logging.ERROR, "Something failed")
        record.exc_info = sys.exc_info()

    parsed = json.loads(_JsonFormatter().format(record))

    assert "ValueError: test error" in parsed["exception"]
