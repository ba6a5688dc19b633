"""
Validation engine: checks learner code against practice-problem test cases.

The learner's code runs once so its definitions land in the interpreter's
global namespace; each test case's probe code then runs on top of them and
its stdout is compared with the expected output.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from practice_core.errors import BootstrapError
from practice_core.schemas import TestCase, TestResult, ValidationResult
from sandbox.executor import SandboxExecutor, StepResult, normalize_output

from evaluator.comparators import Comparator, get_comparator
from evaluator.failures import FailureType, classify_error

logger = logging.getLogger(__name__)

PASSED_MESSAGE = "Test passed!"
MISMATCH_MESSAGE = "Test failed. Output doesn't match expected value."
PROBE_FAILED_PREFIX = "Test execution failed: "
SETUP_FAILED_MESSAGE = "Your code has errors and couldn't be executed"
INTERNAL_ERROR_MESSAGE = "An error occurred while testing your code"


class SolutionValidator:
    """Run learner code plus probes and aggregate per-test results."""

    def __init__(
        self,
        executor: SandboxExecutor | None = None,
        default_comparator: str | Comparator = "exact",
    ) -> None:
        self.executor: SandboxExecutor = executor or SandboxExecutor()
        self.default_comparator: Comparator = (
            get_comparator(default_comparator)
            if isinstance(default_comparator, str)
            else default_comparator
        )

    async def validate(
        self,
        user_code: str,
        test_cases: Sequence[TestCase | Mapping[str, object]],
        timeout_ms: int | None = None,
    ) -> ValidationResult:
        """Validate *user_code* against *test_cases*, in order.

        Raises:
            ValueError: If a test case names an unknown comparator or
                *timeout_ms* is not positive.
        """
        cases = [
            case if isinstance(case, TestCase) else TestCase.model_validate(case)
            for case in test_cases
        ]
        comparators = [self._resolve(case) for case in cases]
        timeout_ms = self.executor.resolve_timeout(timeout_ms)

        async with self.executor.lock:
            try:
                return await self._validate_locked(user_code, cases, comparators, timeout_ms)
            except BootstrapError as exc:
                return ValidationResult(
                    success=False,
                    output="",
                    error=str(exc),
                    test_results=[TestResult(passed=False, message=INTERNAL_ERROR_MESSAGE)],
                    failure_type=FailureType.BOOTSTRAP_ERROR.value,
                )

    def _resolve(self, case: TestCase) -> Comparator:
        if case.comparator is None:
            return self.default_comparator
        return get_comparator(case.comparator)

    async def _validate_locked(
        self,
        user_code: str,
        cases: list[TestCase],
        comparators: list[Comparator],
        timeout_ms: int | None,
    ) -> ValidationResult:
        setup = await self.executor.run_step(user_code, timeout_ms)
        if not setup.success:
            logger.debug(f"User code failed before any test ran: {setup.error}")
            return ValidationResult(
                success=False,
                output="",
                error=setup.error,
                runtime_ms=setup.runtime_ms,
                timed_out=setup.timed_out,
                test_results=[TestResult(passed=False, message=SETUP_FAILED_MESSAGE)],
                failure_type=_setup_failure_type(setup).value,
            )

        results: list[TestResult] = []
        failure_type: FailureType | None = None
        last_stdout = setup.stdout
        runtime_ms = setup.runtime_ms
        definitions_lost = False

        for index, (case, comparator) in enumerate(zip(cases, comparators)):
            if definitions_lost:
                results.append(
                    TestResult(
                        passed=False,
                        message=SETUP_FAILED_MESSAGE,
                        expected=case.expected_output.strip(),
                    )
                )
                continue

            step = await self.executor.run_step(case.test_code, timeout_ms)
            runtime_ms += step.runtime_ms
            last_stdout = step.stdout

            if step.success:
                actual = step.stdout.strip()
                expected = case.expected_output.strip()
                passed = comparator(actual, expected)
                results.append(
                    TestResult(
                        passed=passed,
                        message=PASSED_MESSAGE if passed else MISMATCH_MESSAGE,
                        expected=expected,
                        actual=actual,
                    )
                )
                if not passed and failure_type is None:
                    failure_type = FailureType.WRONG_OUTPUT
                continue

            results.append(
                TestResult(
                    passed=False,
                    message=PROBE_FAILED_PREFIX + (step.error or ""),
                    expected=case.expected_output,
                    actual=step.stderr,
                )
            )
            if failure_type is None:
                failure_type = classify_error(step.error or "")

            # the restart dropped the user's definitions
            if step.interpreter_restarted and index < len(cases) - 1:
                restored = await self._restore_definitions(user_code, timeout_ms)
                if restored is not None:
                    runtime_ms += restored.runtime_ms
                definitions_lost = restored is None or not restored.success

        success = all(result.passed for result in results)
        return ValidationResult(
            success=success,
            output=normalize_output(last_stdout),
            runtime_ms=runtime_ms,
            test_results=results,
            failure_type=failure_type.value if failure_type is not None else None,
        )

    async def _restore_definitions(self, user_code: str, timeout_ms: int | None) -> StepResult | None:
        try:
            step = await self.executor.run_step(user_code, timeout_ms)
        except BootstrapError as exc:
            logger.warning(f"Could not restart interpreter: {exc}")
            return None
        if not step.success:
            logger.warning(f"User code failed when re-run after a restart: {step.error}")
        return step


def _setup_failure_type(step: StepResult) -> FailureType:
    if step.timed_out:
        return FailureType.TIMEOUT
    if classify_error(step.error or "") is FailureType.SYNTAX_ERROR:
        return FailureType.SYNTAX_ERROR
    return FailureType.SETUP_ERROR
