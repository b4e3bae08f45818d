"""Naive Bayes page classification against a pre-trained category model."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
from scipy import sparse
from sklearn.feature_extraction.text import CountVectorizer

from ..types import ScoreVector
from .base import ScoringPrimitive

if TYPE_CHECKING:
    from ..loader import ModelContext

LOGGER = logging.getLogger(__name__)

DEFAULT_MIN_WORDS = 20
DEFAULT_MAX_WORDS = 1234


@dataclass(frozen=True, eq=False)
class CategoryModel:
    """Word/category log-likelihood matrix with category priors.

    ``weights`` has one row per vocabulary word and one column per category;
    ``priors`` holds the prior probability of each category. Both arrays are
    made read-only on construction.
    """

    vocabulary: Mapping[str, int]
    weights: np.ndarray
    priors: np.ndarray
    names: tuple[str, ...]
    _vectorizer: CountVectorizer = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.names:
            raise ValueError("model requires at least one category")
        if not self.vocabulary:
            raise ValueError("model vocabulary is empty")
        weights = np.array(self.weights, dtype=np.float64)
        priors = np.array(self.priors, dtype=np.float64)
        if weights.ndim != 2:
            raise ValueError("weights must be a 2-D matrix")
        if priors.ndim != 1 or priors.shape[0] != len(self.names):
            raise ValueError(
                f"Expected {len(self.names)} priors, got shape {priors.shape}"
            )
        if weights.shape != (len(self.vocabulary), len(self.names)):
            raise ValueError(
                "weights shape mismatch "
                f"(expected {(len(self.vocabulary), len(self.names))}, got {weights.shape})"
            )
        if np.any(priors <= 0):
            raise ValueError("category priors must be positive")
        weights.setflags(write=False)
        priors.setflags(write=False)
        object.__setattr__(self, "weights", weights)
        object.__setattr__(self, "priors", priors)
        object.__setattr__(self, "names", tuple(str(name) for name in self.names))
        object.__setattr__(self, "vocabulary", dict(self.vocabulary))
        object.__setattr__(
            self,
            "_vectorizer",
            CountVectorizer(analyzer=_pretokenized, vocabulary=self.vocabulary),
        )

    @classmethod
    def from_rows(
        cls,
        rows: Mapping[str, Sequence[float]],
        names: Sequence[str],
        priors: Sequence[float],
    ) -> CategoryModel:
        """Build a model from a ``word -> per-category weights`` mapping."""

        vocabulary: dict[str, int] = {}
        matrix: list[Sequence[float]] = []
        for word, weights in rows.items():
            key = str(word).lower().strip()
            if not key or key in vocabulary:
                continue
            if len(weights) != len(names):
                raise ValueError(
                    f"Word '{key}' has {len(weights)} weights for {len(names)} categories"
                )
            vocabulary[key] = len(matrix)
            matrix.append(weights)
        array = np.array(matrix, dtype=np.float64).reshape(len(matrix), len(names))
        return cls(
            vocabulary=vocabulary, weights=array, priors=np.asarray(priors), names=tuple(names)
        )

    @property
    def category_count(self) -> int:
        return len(self.names)

    def count_vector(self, tokens: Sequence[str]) -> sparse.csr_matrix:
        """Return a 1 x vocabulary sparse row of token counts."""

        return self._vectorizer.transform([list(tokens)])


def multinomial_log_scores(tokens: Sequence[str], model: CategoryModel) -> np.ndarray:
    """Log-prior plus summed word log-likelihoods for each category.

    Tokens absent from the vocabulary contribute nothing.
    """

    counts = model.count_vector(tokens)
    likelihood = np.asarray(counts @ model.weights).ravel()
    return likelihood + np.log(model.priors)


def classify(
    tokens: Sequence[str],
    context: ModelContext,
    *,
    min_words: int = DEFAULT_MIN_WORDS,
    max_words: int = DEFAULT_MAX_WORDS,
    scorer: ScoringPrimitive = multinomial_log_scores,
) -> ScoreVector | None:
    """Score a page's tokens, or return None when there is nothing to record.

    None means either the model has not finished loading or the page carries
    too few words to be meaningful; callers must leave their state untouched.
    """

    if not context.ready or context.model is None:
        LOGGER.debug("Category model not ready; skipping classification")
        return None
    if len(tokens) < min_words:
        LOGGER.debug("Only %s tokens (< %s); skipping classification", len(tokens), min_words)
        return None
    if len(tokens) > max_words:
        tokens = tokens[:max_words]

    scores = np.asarray(scorer(tokens, context.model), dtype=np.float64).ravel()
    if scores.shape[0] != context.model.category_count:
        raise ValueError(
            f"Scorer returned {scores.shape[0]} scores "
            f"for {context.model.category_count} categories"
        )
    return tuple(float(value) for value in scores)


def argmax(vector: Sequence[float]) -> int:
    """Index of the largest score; ties resolve to the first occurrence."""

    if len(vector) == 0:
        raise ValueError("cannot take argmax of an empty score vector")
    return int(np.argmax(np.asarray(vector, dtype=np.float64)))


def _pretokenized(document: Sequence[str]) -> Sequence[str]:
    return document


__all__ = [
    "CategoryModel",
    "DEFAULT_MAX_WORDS",
    "DEFAULT_MIN_WORDS",
    "argmax",
    "classify",
    "multinomial_log_scores",
]
