from __future__ import annotations

import sys
from collections.abc import Mapping
from enum import Enum
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field


TBaseSchema = TypeVar("TBaseSchema", bound="BaseSchema")


class BaseSchema(BaseModel):
    def to_json(self) -> str:
        return self.model_dump_json()

    def to_dict(self) -> dict[str, object]:
        return self.model_dump()

    @classmethod
    def from_json(cls: type[TBaseSchema], data: str) -> TBaseSchema:
        return cls.model_validate_json(data)

    @classmethod
    def from_dict(cls: type[TBaseSchema], data: Mapping[str, object]) -> TBaseSchema:
        return cls.model_validate(data)


class RuntimeState(str, Enum):
    NOT_STARTED = "not_started"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class RuntimeStatus(BaseSchema):
    """Snapshot of the loader state for UI-style consumers."""

    state: RuntimeState = RuntimeState.NOT_STARTED
    error: str | None = None
    bootstrap_attempts: int = Field(default=0, ge=0)

    @property
    def is_loading(self) -> bool:
        return self.state is RuntimeState.LOADING

    @property
    def is_loaded(self) -> bool:
        return self.state is RuntimeState.READY


class SandboxConfig(BaseSchema):
    python_executable: str = Field(default_factory=lambda: sys.executable)
    startup_timeout_s: float = Field(default=10.0, gt=0)
    default_timeout_ms: int = Field(default=5000, gt=0)
    max_message_bytes: int = Field(default=16 * 1024 * 1024, gt=0)
    env: dict[str, str] = Field(default_factory=dict)


class RunOutcome(BaseSchema):
    """Raw outcome of a single ``run`` inside the interpreter."""

    ok: bool
    error: str | None = None
    error_type: str | None = None
    traceback: str | None = None


class ExecutionResult(BaseSchema):
    success: bool
    output: str = ""
    error: str | None = None
    runtime_ms: float = 0.0
    timed_out: bool = False


class TestCase(BaseSchema):
    """Probe code paired with the output it must print.

    ``testCode``/``expectedOutput`` are accepted as aliases so problem data
    authored for the web client loads unchanged.
    """

    __test__ = False

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    test_code: str = Field(alias="testCode")
    expected_output: str = Field(alias="expectedOutput")
    comparator: str | None = None
    description: str | None = None


class TestResult(BaseSchema):
    __test__ = False

    passed: bool
    message: str
    expected: str | None = None
    actual: str | None = None


class ValidationResult(ExecutionResult):
    test_results: list[TestResult] = Field(default_factory=list)
    failure_type: str | None = None

    @property
    def passed_count(self) -> int:
        return sum(1 for result in self.test_results if result.passed)

    @property
    def total_count(self) -> int:
        return len(self.test_results)
