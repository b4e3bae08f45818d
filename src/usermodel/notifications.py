"""Outbound ad notification dispatch."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Shows a system notification; callers never wait on the result."""

    def show(self, window_id: int | None, title: str, message: str, target_url: str) -> None:
        """Display ``message`` titled ``title`` that opens ``target_url`` when clicked."""


class LogNotifier:
    """Notifier that only records what would have been shown."""

    def show(self, window_id: int | None, title: str, message: str, target_url: str) -> None:
        LOGGER.info(
            "Notification for window %s: %s - %s (%s)", window_id, title, message, target_url
        )


__all__ = ["LogNotifier", "Notifier"]
