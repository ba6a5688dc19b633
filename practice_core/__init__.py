"""
Practice Core Module

Shared schemas and error types for the practice runner.

This module provides:
- Pydantic result models (execution, validation, per-test results)
- Test case and runtime status models
- Sandbox configuration schema
- Error taxonomy for bootstrap and worker failures
"""

__version__ = "0.1.0"

from .errors import BootstrapError, SandboxError, WorkerProtocolError
from .schemas import (
    ExecutionResult,
    RunOutcome,
    RuntimeState,
    RuntimeStatus,
    SandboxConfig,
    TestCase,
    TestResult,
    ValidationResult,
)

__all__ = [
    "BootstrapError",
    "ExecutionResult",
    "RunOutcome",
    "RuntimeState",
    "RuntimeStatus",
    "SandboxConfig",
    "SandboxError",
    "TestCase",
    "TestResult",
    "ValidationResult",
    "WorkerProtocolError",
]
