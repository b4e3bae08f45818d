from __future__ import annotations

import logging
from pathlib import Path

import pytest

from usermodel.config import ConfigError, LoggingConfig
from usermodel.logging import (
    EVENTS_LOGGER,
    ConsoleFormatter,
    EventPayloadFilter,
    configure_logging,
    render_payload,
)


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def _record(name: str, level: int, message: str, payload=None) -> logging.LogRecord:
    record = logging.LogRecord(name, level, __file__, 1, message, None, None)
    if payload is not None:
        record.event_payload = payload
    EventPayloadFilter().filter(record)
    return record


def test_render_payload() -> None:
    assert render_payload(None) == ""
    assert render_payload({}) == ""
    assert render_payload({"reason": "rate_limited", "n": 2}) == " [reason='rate_limited' n=2]"


def test_console_formatter_marks_events() -> None:
    formatter = ConsoleFormatter(use_color=False)

    event = _record(EVENTS_LOGGER, logging.INFO, "Ad shown", {"candidateId": "a1"})
    warning = _record("usermodel.loader", logging.WARNING, "No ad catalog configured")

    assert formatter.format(event) == "E Ad shown [candidateId='a1']"
    assert formatter.format(warning) == "! No ad catalog configured"


def test_configure_logging_writes_main_and_debug_files(tmp_path: Path) -> None:
    log_dir = configure_logging(LoggingConfig(level="debug", debug_file=True), tmp_path)

    logging.getLogger(EVENTS_LOGGER).info(
        "Site visited", extra={"event_payload": {"url": "https://news.example/"}}
    )
    logging.getLogger("usermodel.test").debug("only in debug log")
    for handler in logging.getLogger().handlers:
        handler.flush()

    main_log = (log_dir / "usermodel.log").read_text(encoding="utf-8")
    debug_log = (log_dir / "debug.log").read_text(encoding="utf-8")
    assert log_dir == tmp_path / "logs"
    assert "Site visited [url='https://news.example/']" in main_log
    assert "only in debug log" not in main_log
    assert "only in debug log" in debug_log


def test_unknown_level_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        configure_logging(LoggingConfig(level="chatty"), tmp_path)
