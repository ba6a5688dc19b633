"""Output comparison policies for test cases."""

from __future__ import annotations

import math
import re
from collections.abc import Callable

Comparator = Callable[[str, str], bool]

_WHITESPACE_RUN = re.compile(r"[ \t]+")


def exact_match(actual: str, expected: str) -> bool:
    """Exact equality after trimming leading/trailing whitespace."""
    return actual.strip() == expected.strip()


def normalized_whitespace(actual: str, expected: str) -> bool:
    """Equality after collapsing blank runs and trimming every line."""
    return _normalize_lines(actual) == _normalize_lines(expected)


def _normalize_lines(text: str) -> list[str]:
    return [_WHITESPACE_RUN.sub(" ", line).strip() for line in text.strip().splitlines()]


def numeric_close(
    actual: str,
    expected: str,
    rel_tol: float = 1e-9,
    abs_tol: float = 1e-9,
) -> bool:
    """Token-wise comparison; numeric tokens only need to be close."""
    actual_tokens = actual.split()
    expected_tokens = expected.split()
    if len(actual_tokens) != len(expected_tokens):
        return False
    for got, want in zip(actual_tokens, expected_tokens):
        got_number = _parse_float(got)
        want_number = _parse_float(want)
        if got_number is None or want_number is None:
            if got != want:
                return False
            continue
        if not math.isclose(got_number, want_number, rel_tol=rel_tol, abs_tol=abs_tol):
            return False
    return True


def _parse_float(token: str) -> float | None:
    try:
        value = float(token)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


_COMPARATORS: dict[str, Comparator] = {
    "exact": exact_match,
    "normalized_whitespace": normalized_whitespace,
    "numeric": numeric_close,
}


def get_comparator(name: str) -> Comparator:
    key = (name or "").lower()
    if key not in _COMPARATORS:
        raise ValueError(f"Unknown comparator '{name}'")
    return _COMPARATORS[key]


def available_comparators() -> list[str]:
    return sorted(_COMPARATORS)
