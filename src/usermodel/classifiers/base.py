"""Scoring primitive protocol definitions."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np

if TYPE_CHECKING:
    from .naive_bayes import CategoryModel


@runtime_checkable
class ScoringPrimitive(Protocol):
    """Turns a token sequence into one score per model category."""

    def __call__(self, tokens: Sequence[str], model: CategoryModel) -> np.ndarray:
        """Return a 1-D array index-aligned with ``model.names``."""


__all__ = ["ScoringPrimitive"]
