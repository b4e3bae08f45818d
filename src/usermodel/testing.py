"""Test doubles for usermodel collaborators.

Import explicitly from tests; production code never imports this module.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from .classifiers import CategoryModel
from .loader import ModelContext, ModelSlot
from .network import ProbeCallback
from .types import Catalog


class RecordingEventSink:
    """Collects events in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def log(self, tag: str, payload: Mapping[str, Any] | None = None) -> None:
        self.events.append((tag, dict(payload or {})))

    def tags(self) -> list[str]:
        return [tag for tag, _payload in self.events]


class RecordingNotifier:
    """Collects notifications instead of showing them."""

    def __init__(self) -> None:
        self.shown: list[tuple[int | None, str, str, str]] = []

    def show(self, window_id: int | None, title: str, message: str, target_url: str) -> None:
        self.shown.append((window_id, title, message, target_url))


class StaticNetworkProbe:
    """Reports a fixed SSID, or a fixed error, synchronously."""

    def __init__(self, ssid: str | None = "test-network", error: Exception | None = None) -> None:
        self.ssid = ssid
        self.error = error
        self.calls = 0

    def probe(self, callback: ProbeCallback) -> None:
        self.calls += 1
        if self.error is not None:
            callback(self.error, None)
            return
        callback(None, self.ssid)


class FixedClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def build_model(
    rows: Mapping[str, Sequence[float]],
    names: Sequence[str],
    priors: Sequence[float] | None = None,
) -> CategoryModel:
    """Category model with uniform priors unless given."""

    if priors is None:
        priors = [1.0 / len(names)] * len(names)
    return CategoryModel.from_rows(rows, names, priors)


def ready_slot(model: CategoryModel, catalog: Catalog | None = None) -> ModelSlot:
    """A ModelSlot that has already published ``model`` and ``catalog``."""

    slot = ModelSlot()
    slot.publish(ModelContext.loaded(model, catalog))
    return slot


__all__ = [
    "FixedClock",
    "RecordingEventSink",
    "RecordingNotifier",
    "StaticNetworkProbe",
    "build_model",
    "ready_slot",
]
