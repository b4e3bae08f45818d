"""Logging setup for usermodel.

Operational messages go to ``usermodel.log`` and the console. Diagnostic
events (page visits, suppressions, shown ads) are ordinary records on the
``usermodel.events`` logger carrying an ``event_payload`` mapping, which the
handlers installed here render after the message.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from .config import ConfigError, LoggingConfig

EVENTS_LOGGER = "usermodel.events"
MAIN_LOG_NAME = "usermodel.log"
DEBUG_LOG_NAME = "debug.log"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s%(event_suffix)s"
MAX_LOG_BYTES = 5_000_000
LOG_BACKUPS = 5


def render_payload(payload: Mapping[str, Any] | None) -> str:
    if not payload:
        return ""
    return " [" + " ".join(f"{key}={value!r}" for key, value in payload.items()) + "]"


class EventPayloadFilter(logging.Filter):
    """Expose ``event_payload`` to format strings as ``event_suffix``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.event_suffix = render_payload(getattr(record, "event_payload", None))
        return True


class ConsoleFormatter(logging.Formatter):
    """Level symbol in front of each line; events get their own marker."""

    SYMBOLS: dict[int, tuple[str, str]] = {
        logging.DEBUG: ("D", "\x1b[36m"),
        logging.INFO: ("I", "\x1b[32m"),
        logging.WARNING: ("!", "\x1b[33m"),
        logging.ERROR: ("X", "\x1b[31m"),
        logging.CRITICAL: ("X", "\x1b[35m"),
    }
    EVENT_SYMBOL = ("E", "\x1b[34m")
    RESET = "\x1b[0m"

    def __init__(self, use_color: bool) -> None:
        super().__init__("%(message)s%(event_suffix)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        if record.name == EVENTS_LOGGER:
            symbol, color = self.EVENT_SYMBOL
        else:
            symbol, color = self.SYMBOLS.get(record.levelno, ("?", "\x1b[37m"))
        line = super().format(record)
        if not self.use_color:
            return f"{symbol} {line}"
        return f"{color}{symbol}{self.RESET} {line}"


def configure_logging(logging_config: LoggingConfig, root_dir: Path) -> Path:
    """Install file and console handlers on the root logger.

    Returns the log directory so callers can place the events file beside
    the main log.
    """

    level = _parse_level(logging_config.level)
    log_dir = (root_dir / "logs").expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = [_file_handler(log_dir / MAIN_LOG_NAME, logging.INFO), _console_handler()]
    if logging_config.debug_file:
        handlers.append(_file_handler(log_dir / DEBUG_LOG_NAME, logging.DEBUG))
    for handler in handlers:
        handler.addFilter(EventPayloadFilter())

    logging.basicConfig(level=level, handlers=handlers, force=True)
    return log_dir


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    isatty = getattr(handler.stream, "isatty", None)
    handler.setFormatter(ConsoleFormatter(bool(isatty and isatty())))
    return handler


def _parse_level(level: str) -> int:
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ConfigError(f"Unknown log level: {level}")
    return value


__all__ = ["EVENTS_LOGGER", "EventPayloadFilter", "configure_logging", "render_payload"]
