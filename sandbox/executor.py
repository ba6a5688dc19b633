"""
Execution engine: runs user code in the shared interpreter under a timeout.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from practice_core.errors import BootstrapError, WorkerProtocolError
from practice_core.schemas import ExecutionResult, SandboxConfig
from sandbox.loader import RuntimeLoader

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Execution timed out"


@dataclass
class StepResult:
    """Captured outcome of one clear -> run -> read cycle."""

    success: bool
    stdout: str
    stderr: str
    error: str | None
    runtime_ms: float
    timed_out: bool = False
    interpreter_restarted: bool = False


def normalize_output(text: str) -> str:
    return text.rstrip("\n")


class SandboxExecutor:
    """
    Execute code in the loader's interpreter, one request at a time.

    Timeouts are hard: the interpreter is killed and the loader starts a fresh
    one on the next request, so names defined before the timeout are gone.
    """

    def __init__(
        self,
        loader: RuntimeLoader | None = None,
        config: SandboxConfig | None = None,
    ) -> None:
        self.loader: RuntimeLoader = loader or RuntimeLoader(config=config)
        self.config: SandboxConfig = self.loader.config
        self.lock: asyncio.Lock = asyncio.Lock()

    async def execute(self, code: str, timeout_ms: int | None = None) -> ExecutionResult:
        """Run *code* and return a normalized result. Never raises for user errors."""
        timeout_ms = self.resolve_timeout(timeout_ms)
        start = time.perf_counter()
        async with self.lock:
            try:
                step = await self.run_step(code, timeout_ms)
            except BootstrapError as exc:
                return ExecutionResult(
                    success=False,
                    output="",
                    error=str(exc),
                    runtime_ms=(time.perf_counter() - start) * 1000,
                )

        if step.timed_out:
            return ExecutionResult(
                success=False,
                output="",
                error=TIMEOUT_MESSAGE,
                runtime_ms=step.runtime_ms,
                timed_out=True,
            )
        if step.success:
            return ExecutionResult(
                success=True,
                output=normalize_output(step.stdout or step.stderr),
                runtime_ms=step.runtime_ms,
            )
        return ExecutionResult(
            success=False,
            output=normalize_output(step.stderr),
            error=step.error,
            runtime_ms=step.runtime_ms,
        )

    def resolve_timeout(self, timeout_ms: int | None) -> int:
        if timeout_ms is None:
            return self.config.default_timeout_ms
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        return timeout_ms

    async def run_step(self, code: str, timeout_ms: int | None = None) -> StepResult:
        """Clear the buffers, run *code*, and read both buffers back.

        Callers must hold ``self.lock``.

        Raises:
            BootstrapError: If no interpreter could be made ready.
            ValueError: If *timeout_ms* is not positive.
        """
        timeout_ms = self.resolve_timeout(timeout_ms)
        runtime = await self.loader.get_runtime()

        start = time.perf_counter()
        try:
            await runtime.clear()
            try:
                outcome = await asyncio.wait_for(runtime.run(code), timeout=timeout_ms / 1000)
            except asyncio.TimeoutError:
                runtime_ms = (time.perf_counter() - start) * 1000
                logger.warning(f"Execution timed out after {timeout_ms}ms; restarting interpreter")
                await self.loader.discard()
                return StepResult(
                    success=False,
                    stdout="",
                    stderr="",
                    error=TIMEOUT_MESSAGE,
                    runtime_ms=runtime_ms,
                    timed_out=True,
                    interpreter_restarted=True,
                )
            stdout = await runtime.read_stdout()
            stderr = await runtime.read_stderr()
        except WorkerProtocolError as exc:
            runtime_ms = (time.perf_counter() - start) * 1000
            logger.warning(f"Interpreter failed during execution: {exc}")
            await self.loader.discard()
            return StepResult(
                success=False,
                stdout="",
                stderr="",
                error=f"Interpreter failed: {exc}",
                runtime_ms=runtime_ms,
                interpreter_restarted=True,
            )

        runtime_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            f"Ran {len(code)} chars in {runtime_ms:.1f}ms (ok={outcome.ok}, "
            f"stdout={len(stdout)} chars, stderr={len(stderr)} chars)"
        )
        return StepResult(
            success=outcome.ok,
            stdout=stdout,
            stderr=stderr,
            error=outcome.error,
            runtime_ms=runtime_ms,
        )
