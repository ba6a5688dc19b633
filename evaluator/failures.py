"""Failure classification for validation results."""

from __future__ import annotations

from enum import Enum


class FailureType(str, Enum):
    BOOTSTRAP_ERROR = "bootstrap_error"
    SETUP_ERROR = "setup_error"
    TIMEOUT = "timeout"
    SYNTAX_ERROR = "syntax_error"
    RUNTIME_ERROR = "runtime_error"
    WRONG_OUTPUT = "wrong_output"


def classify_error(error_msg: str) -> FailureType:
    error_lower = error_msg.lower()

    if "timed out" in error_lower or "timeout" in error_lower:
        return FailureType.TIMEOUT
    elif "syntaxerror" in error_lower or "indentationerror" in error_lower:
        return FailureType.SYNTAX_ERROR
    return FailureType.RUNTIME_ERROR


class FailureAnalyzer:
    """Tallies failure types across many validation runs."""

    def __init__(self) -> None:
        self.failures: dict[FailureType, int] = {ft: 0 for ft in FailureType}

    def record(self, failure_type: FailureType | str | None) -> None:
        if failure_type is None:
            return
        self.failures[FailureType(failure_type)] += 1

    def get_top_failures(self, n: int = 5) -> list[tuple[str, int]]:
        sorted_failures = sorted(
            self.failures.items(),
            key=lambda x: x[1],
            reverse=True,
        )
        return [(ft.value, count) for ft, count in sorted_failures[:n] if count]
