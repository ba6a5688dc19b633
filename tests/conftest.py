import asyncio
import contextlib

import pytest

from practice_core.errors import WorkerProtocolError
from practice_core.schemas import RunOutcome
from sandbox.streams import RedirectedStreams

HANG_PREFIX = "#hang:"
CRASH_CODE = "#crash"


class FakeRuntime:
    """In-process stand-in for the worker interpreter.

    Code whose first line is ``#hang:<seconds>`` sleeps before running, and
    ``#crash`` behaves like a worker that died mid-request.
    """

    def __init__(
        self,
        start_delay: float = 0.0,
        start_error: Exception | None = None,
        preset_globals: dict[str, object] | None = None,
    ) -> None:
        self.start_delay = start_delay
        self.start_error = start_error
        self.started = False
        self.redirected = False
        self.terminated = False
        self.namespace: dict[str, object] = {"__name__": "__main__", **(preset_globals or {})}
        self.streams = RedirectedStreams()
        self.executed: list[str] = []

    @property
    def is_alive(self) -> bool:
        return self.started and not self.terminated

    async def start(self) -> None:
        await asyncio.sleep(self.start_delay)
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def install_redirect(self) -> None:
        self.redirected = True

    async def run(self, code: str) -> RunOutcome:
        self.executed.append(code)
        if code == CRASH_CODE:
            raise WorkerProtocolError("Worker exited unexpectedly")
        if code.startswith(HANG_PREFIX):
            first_line = code.splitlines()[0]
            await asyncio.sleep(float(first_line[len(HANG_PREFIX):]))
        try:
            with contextlib.redirect_stdout(self.streams.stdout), contextlib.redirect_stderr(self.streams.stderr):
                exec(compile(code, "<user-code>", "exec"), self.namespace)
        except Exception as exc:
            return RunOutcome(
                ok=False,
                error=f"{exc.__class__.__name__}: {exc}",
                error_type=exc.__class__.__name__,
            )
        return RunOutcome(ok=True)

    async def clear(self) -> None:
        self.streams.clear()

    async def read_stdout(self) -> str:
        return self.streams.read_stdout()

    async def read_stderr(self) -> str:
        return self.streams.read_stderr()

    async def terminate(self) -> None:
        self.terminated = True


class FakeRuntimeFactory:
    def __init__(self) -> None:
        self.start_delay: float = 0.0
        self.start_error: Exception | None = None
        self.build_errors: list[Exception] = []
        # names every new runtime starts with; values are shared, not copied
        self.preset_globals: dict[str, object] = {}
        self.created: list[FakeRuntime] = []
        self.calls = 0

    def __call__(self) -> FakeRuntime:
        self.calls += 1
        if self.build_errors:
            raise self.build_errors.pop(0)
        runtime = FakeRuntime(
            start_delay=self.start_delay,
            start_error=self.start_error,
            preset_globals=self.preset_globals,
        )
        self.created.append(runtime)
        return runtime


@pytest.fixture
def fake_factory() -> FakeRuntimeFactory:
    return FakeRuntimeFactory()
