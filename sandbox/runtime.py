"""
Interpreter runtimes the loader can bootstrap.

``Runtime`` is the contract the loader and engines depend on; the default
implementation keeps one Python worker process alive and talks to it through
the frame protocol in ``sandbox.protocol``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, cast, runtime_checkable

from practice_core.errors import BootstrapError, WorkerProtocolError
from practice_core.schemas import RunOutcome, SandboxConfig
from sandbox import protocol

logger = logging.getLogger(__name__)


@runtime_checkable
class Runtime(Protocol):
    """A live interpreter with redirected output channels."""

    @property
    def is_alive(self) -> bool: ...

    async def start(self) -> None: ...

    async def install_redirect(self) -> None: ...

    async def run(self, code: str) -> RunOutcome: ...

    async def clear(self) -> None: ...

    async def read_stdout(self) -> str: ...

    async def read_stderr(self) -> str: ...

    async def terminate(self) -> None: ...


RuntimeFactory = Callable[[], Runtime]


class SubprocessRuntime:
    """
    Python interpreter hosted in a child process.

    Killing the process is the only way to stop runaway user code, so a
    timed-out runtime is terminated rather than reused.
    """

    def __init__(self, config: SandboxConfig | None = None) -> None:
        self.config: SandboxConfig = config or SandboxConfig()
        self._process: asyncio.subprocess.Process | None = None
        self._next_id: int = 0
        self.python_version: str | None = None

    @property
    def is_alive(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        if self._process is not None:
            raise BootstrapError("Runtime already started")

        env = os.environ.copy()
        env.update(self.config.env)
        project_root = str(Path(__file__).resolve().parents[1])
        existing_pythonpath = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = (
            f"{project_root}{os.pathsep}{existing_pythonpath}"
            if existing_pythonpath
            else project_root
        )

        try:
            self._process = await asyncio.create_subprocess_exec(
                self.config.python_executable,
                "-c",
                protocol.WORKER_TEMPLATE,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                limit=self.config.max_message_bytes,
            )
        except OSError as exc:
            raise BootstrapError(
                f"Failed to launch interpreter {self.config.python_executable!r}: {exc}"
            ) from exc

        process = self._process
        assert process.stdout is not None
        try:
            line = await asyncio.wait_for(
                process.stdout.readline(), timeout=self.config.startup_timeout_s
            )
        except asyncio.TimeoutError as exc:
            await self.terminate()
            raise BootstrapError(
                f"Interpreter did not become ready within {self.config.startup_timeout_s}s"
            ) from exc

        if not line:
            stderr = await self._drain_stderr()
            await self.terminate()
            detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no output"
            raise BootstrapError(f"Interpreter exited during startup: {detail}")

        try:
            handshake = json.loads(line)
        except json.JSONDecodeError as exc:
            await self.terminate()
            raise BootstrapError(f"Invalid handshake from interpreter: {exc}") from exc
        if not isinstance(handshake, dict) or handshake.get("ready") is not True:
            await self.terminate()
            raise BootstrapError("Interpreter sent an unexpected handshake")

        self.python_version = str(handshake.get("python", ""))
        logger.debug(f"Worker {process.pid} ready (Python {self.python_version})")

    async def install_redirect(self) -> None:
        response = await self._request("install_redirect")
        if not response.get("ok"):
            raise WorkerProtocolError(f"Redirect setup failed: {response.get('error')}")

    async def run(self, code: str) -> RunOutcome:
        response = await self._request("run", code=code)
        return RunOutcome(
            ok=bool(response.get("ok")),
            error=_optional_str(response.get("error")),
            error_type=_optional_str(response.get("error_type")),
            traceback=_optional_str(response.get("traceback")),
        )

    async def clear(self) -> None:
        response = await self._request("clear")
        if not response.get("ok"):
            raise WorkerProtocolError(f"Clear failed: {response.get('error')}")

    async def read_stdout(self) -> str:
        return (await self._read())[0]

    async def read_stderr(self) -> str:
        return (await self._read())[1]

    async def terminate(self) -> None:
        process = self._process
        if process is None:
            return
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        _ = await process.wait()
        if process.stdin is not None:
            process.stdin.close()
        logger.debug(f"Worker {process.pid} terminated")

    async def _read(self) -> tuple[str, str]:
        response = await self._request("read")
        return str(response.get("stdout") or ""), str(response.get("stderr") or "")

    async def _request(self, op: str, **fields: object) -> dict[str, object]:
        process = self._process
        if process is None or process.stdin is None or process.stdout is None:
            raise WorkerProtocolError("Runtime not started")

        self._next_id += 1
        frame: dict[str, object] = {"id": self._next_id, "op": op, **fields}
        try:
            process.stdin.write((json.dumps(frame) + "\n").encode("utf-8"))
            await process.stdin.drain()
            line = await process.stdout.readline()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise WorkerProtocolError(f"Worker connection lost: {exc}") from exc
        except ValueError as exc:
            raise WorkerProtocolError(
                f"Worker frame exceeds {self.config.max_message_bytes} bytes"
            ) from exc

        if not line:
            raise WorkerProtocolError("Worker exited unexpectedly")
        try:
            loaded = cast(object, json.loads(line))
        except json.JSONDecodeError as exc:
            raise WorkerProtocolError(f"Invalid JSON from worker: {exc}") from exc
        if not isinstance(loaded, dict):
            raise WorkerProtocolError("Invalid response type from worker")
        response = cast(dict[str, object], loaded)
        if response.get("id") != frame["id"]:
            raise WorkerProtocolError(
                f"Out-of-order response from worker: expected {frame['id']}, got {response.get('id')}"
            )
        return response

    async def _drain_stderr(self) -> str:
        process = self._process
        if process is None or process.stderr is None:
            return ""
        try:
            data = await asyncio.wait_for(process.stderr.read(), timeout=1.0)
        except asyncio.TimeoutError:
            return ""
        return data.decode("utf-8", errors="replace")


def _optional_str(value: object) -> str | None:
    return str(value) if value is not None else None


def subprocess_runtime_factory(config: SandboxConfig | None = None) -> RuntimeFactory:
    """Return a factory building worker-process runtimes from *config*."""
    def _factory() -> Runtime:
        return SubprocessRuntime(config)

    return _factory
