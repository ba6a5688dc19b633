"""
Problems Module

Practice-problem data provider.

This module provides:
- The Problem schema (starter code, hints, reference solution, test cases)
- A topic-grouped catalog with lookup by problem id
- YAML loading and the bundled basics problem set
"""

__version__ = "0.1.0"

from .catalog import (
    BUILTIN_PROBLEMS_PATH,
    Difficulty,
    Problem,
    ProblemCatalog,
    load_builtin_problems,
    load_problems,
)

__all__ = [
    "BUILTIN_PROBLEMS_PATH",
    "Difficulty",
    "Problem",
    "ProblemCatalog",
    "load_builtin_problems",
    "load_problems",
]
