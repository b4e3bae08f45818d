"""Category model and page classification."""

from .base import ScoringPrimitive
from .naive_bayes import (
    DEFAULT_MAX_WORDS,
    DEFAULT_MIN_WORDS,
    CategoryModel,
    argmax,
    classify,
    multinomial_log_scores,
)

__all__ = [
    "CategoryModel",
    "DEFAULT_MAX_WORDS",
    "DEFAULT_MIN_WORDS",
    "ScoringPrimitive",
    "argmax",
    "classify",
    "multinomial_log_scores",
]
