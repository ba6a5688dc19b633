"""
Evaluator Module

Validation of learner solutions against practice-problem test cases.

This module provides:
- The validation engine (user code once, then each probe in order)
- Pluggable output comparators (exact, whitespace-normalized, numeric)
- Failure classification for validation results
"""

__version__ = "0.1.0"

from .comparators import (
    Comparator,
    available_comparators,
    exact_match,
    get_comparator,
    normalized_whitespace,
    numeric_close,
)
from .failures import FailureAnalyzer, FailureType, classify_error
from .validation import SolutionValidator

__all__ = [
    "Comparator",
    "FailureAnalyzer",
    "FailureType",
    "SolutionValidator",
    "available_comparators",
    "classify_error",
    "exact_match",
    "get_comparator",
    "normalized_whitespace",
    "numeric_close",
]
