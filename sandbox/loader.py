"""Lazy, single-flight bootstrap of the sandbox interpreter."""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType

from practice_core.errors import BootstrapError
from practice_core.schemas import RuntimeState, RuntimeStatus, SandboxConfig
from sandbox.runtime import Runtime, RuntimeFactory, subprocess_runtime_factory

logger = logging.getLogger(__name__)


class RuntimeLoader:
    """
    Owns the one live interpreter and its readiness state.

    State machine: NOT_STARTED -> LOADING -> READY | FAILED, and
    FAILED -> LOADING on the next request. Concurrent callers that arrive while
    a bootstrap is in flight join that attempt instead of starting another.
    ``discard()`` drops a READY runtime (after a hard timeout) and returns the
    loader to NOT_STARTED.
    """

    def __init__(
        self,
        factory: RuntimeFactory | None = None,
        config: SandboxConfig | None = None,
    ) -> None:
        self.config: SandboxConfig = config or SandboxConfig()
        self._factory: RuntimeFactory = factory or subprocess_runtime_factory(self.config)
        self._runtime: Runtime | None = None
        self._pending: asyncio.Task[Runtime] | None = None
        self._state: RuntimeState = RuntimeState.NOT_STARTED
        self._error: str | None = None
        self._attempts: int = 0

    @property
    def state(self) -> RuntimeState:
        return self._state

    @property
    def status(self) -> RuntimeStatus:
        return RuntimeStatus(
            state=self._state,
            error=self._error,
            bootstrap_attempts=self._attempts,
        )

    async def get_runtime(self) -> Runtime:
        """Return the ready runtime, bootstrapping it on first use.

        Raises:
            BootstrapError: If the interpreter could not be started.
        """
        if self._runtime is not None and self._state is RuntimeState.READY:
            if self._runtime.is_alive:
                return self._runtime
            logger.warning("Interpreter exited while idle; starting a new one")
            await self.discard()

        if self._pending is None:
            self._attempts += 1
            self._state = RuntimeState.LOADING
            self._error = None
            self._pending = asyncio.create_task(self._bootstrap(self._attempts))

        # shielded so one cancelled caller does not abort the shared attempt
        return await asyncio.shield(self._pending)

    async def load(self) -> None:
        """Bootstrap without raising; failures are reported through ``status``."""
        try:
            _ = await self.get_runtime()
        except BootstrapError as exc:
            logger.error(f"Failed to load interpreter: {exc}")

    async def discard(self) -> None:
        """Terminate the live runtime so the next request starts a fresh one."""
        runtime = self._runtime
        self._runtime = None
        if self._state is RuntimeState.READY:
            self._state = RuntimeState.NOT_STARTED
        if runtime is not None:
            await runtime.terminate()
            logger.info("Interpreter discarded")

    async def shutdown(self) -> None:
        pending = self._pending
        if pending is not None:
            try:
                _ = await pending
            except BootstrapError:
                pass
        await self.discard()

    async def __aenter__(self) -> RuntimeLoader:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    async def _bootstrap(self, attempt: int) -> Runtime:
        logger.info(f"Bootstrapping interpreter (attempt {attempt})")
        runtime: Runtime | None = None
        try:
            runtime = self._factory()
            await runtime.start()
            await runtime.install_redirect()
        except Exception as exc:  # noqa: BLE001 - every bootstrap failure surfaces the same way
            if runtime is not None:
                await _terminate_quietly(runtime)
            message = str(exc) or exc.__class__.__name__
            self._state = RuntimeState.FAILED
            self._error = message
            logger.error(f"Interpreter bootstrap failed: {message}")
            if isinstance(exc, BootstrapError):
                raise
            raise BootstrapError(message) from exc
        finally:
            self._pending = None

        self._runtime = runtime
        self._state = RuntimeState.READY
        logger.info("Interpreter ready")
        return runtime


async def _terminate_quietly(runtime: Runtime) -> None:
    try:
        await runtime.terminate()
    except Exception as exc:  # noqa: BLE001
        logger.warning(f"Failed to terminate half-started interpreter: {exc}")
