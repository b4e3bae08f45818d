"""Rotating page-score history and time-aggregated category ranking."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np

from .classifiers import argmax
from .config import HistoryConfig
from .types import ScoreHistory, ScoreVector

LOGGER = logging.getLogger(__name__)
CATEGORY_SEPARATOR = "-"


@runtime_checkable
class AggregationPolicy(Protocol):
    """Weights applied to history entries, oldest first."""

    def weights(self, length: int) -> np.ndarray:
        """Return ``length`` non-negative, non-decreasing weights."""


@dataclass(frozen=True)
class SumAggregation:
    """Every entry in the window counts the same."""

    def weights(self, length: int) -> np.ndarray:
        return np.ones(length, dtype=np.float64)


@dataclass(frozen=True)
class DecayAggregation:
    """Exponential decay; an entry ``half_life`` positions older weighs half as much."""

    half_life: float

    def __post_init__(self) -> None:
        if self.half_life <= 0:
            raise ValueError("half_life must be positive")

    def weights(self, length: int) -> np.ndarray:
        age = np.arange(length - 1, -1, -1, dtype=np.float64)
        return np.power(0.5, age / self.half_life)


def policy_from_config(config: HistoryConfig) -> AggregationPolicy:
    if config.aggregation == "decay":
        return DecayAggregation(config.half_life)
    return SumAggregation()


def append(history: ScoreHistory, vector: Sequence[float], capacity: int) -> ScoreHistory:
    """Return history with ``vector`` appended, evicting the oldest entries past capacity."""

    if capacity < 1:
        raise ValueError("capacity must be at least 1")
    updated = (*history, tuple(float(value) for value in vector))
    if len(updated) > capacity:
        updated = updated[len(updated) - capacity :]
    return updated


def aggregate(
    history: ScoreHistory,
    policy: AggregationPolicy | None = None,
) -> ScoreVector:
    """Combine the window into one ranking vector.

    Entries whose width differs from the newest entry were recorded against a
    different model and are left out.
    """

    if not history:
        return ()
    width = len(history[-1])
    entries = [entry for entry in history if len(entry) == width]
    if len(entries) != len(history):
        LOGGER.debug(
            "Ignoring %s history entries with a stale category layout",
            len(history) - len(entries),
        )
    weights = (policy or SumAggregation()).weights(len(entries))
    combined = weights @ np.asarray(entries, dtype=np.float64)
    return tuple(float(value) for value in combined)


def winning_category(
    history: ScoreHistory,
    names: Sequence[str],
    policy: AggregationPolicy | None = None,
) -> str | None:
    """Full category name ranked highest over the window, if any."""

    scores = aggregate(history, policy)
    if not scores:
        return None
    if len(scores) != len(names):
        LOGGER.warning(
            "History width %s does not match %s model categories", len(scores), len(names)
        )
        return None
    return names[argmax(scores)]


def major_category(name: str) -> str:
    """First component of a hyphenated ``major-minor`` category name."""

    return name.split(CATEGORY_SEPARATOR, 1)[0]


__all__ = [
    "AggregationPolicy",
    "DecayAggregation",
    "SumAggregation",
    "aggregate",
    "append",
    "major_category",
    "policy_from_config",
    "winning_category",
]
