"""Event sink used for every classification, suppression and ad-shown event."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from .logging import EVENTS_LOGGER
from .store import EventLogger, EventRecord

LOGGER = logging.getLogger(EVENTS_LOGGER)

SITE_VISITED = "Site visited"
AD_THROTTLED = "Ad throttled"
NO_AD_CATALOG = "No ad catalog"
NO_ADS_FOR_CATEGORY = "No ads for category"
DUPLICATE_AD = "Duplicate ad"
NO_INTENT_SIGNAL = "No intent signal"
INCOMPLETE_AD = "Incomplete ad information"
AD_SHOWN = "Ad shown"
SSID_UNAVAILABLE = "SSID unavailable"
ADS_DISABLED = "Ads disabled"


@runtime_checkable
class EventSink(Protocol):
    """Fire-and-forget receiver of tagged diagnostic events."""

    def log(self, tag: str, payload: Mapping[str, Any] | None = None) -> None:
        """Record one event."""


class LoggingEventSink:
    """Forwards events to stdlib logging and, optionally, a JSON-lines file."""

    def __init__(self, event_logger: EventLogger | None = None) -> None:
        self._event_logger = event_logger

    def log(self, tag: str, payload: Mapping[str, Any] | None = None) -> None:
        data = dict(payload or {})
        LOGGER.info("%s", tag, extra={"event_payload": data})
        if self._event_logger is None:
            return
        try:
            self._event_logger.append(EventRecord(tag=tag, payload=data))
        except OSError:
            LOGGER.warning("Failed to append event '%s' to %s", tag, self._event_logger.path)


__all__ = [
    "AD_SHOWN",
    "AD_THROTTLED",
    "ADS_DISABLED",
    "DUPLICATE_AD",
    "EventSink",
    "INCOMPLETE_AD",
    "LoggingEventSink",
    "NO_ADS_FOR_CATEGORY",
    "NO_AD_CATALOG",
    "NO_INTENT_SIGNAL",
    "SITE_VISITED",
    "SSID_UNAVAILABLE",
]
