"""
Worker process protocol for sandbox execution.

The worker is a long-lived interpreter that keeps one global namespace for
its whole life, so definitions made by one ``run`` are visible to the next.
Frames are newline-delimited JSON exchanged over private duplicates of the
original stdin/stdout descriptors; fds 0 and 1 (and 2, once the redirect is
installed) are pointed at the null device so user code cannot corrupt frames.

Requests:  {"id": int, "op": "install_redirect" | "run" | "clear" | "read", "code"?: str}
Responses: {"id": int, "ok": bool, ...}
The first frame the worker sends is {"ready": true, "python": "<version>"}.
"""

from __future__ import annotations

import builtins
import io
import json
import os
import platform
import sys
import traceback
from typing import TextIO, cast

from sandbox.streams import RedirectedStreams

WORKER_TEMPLATE = """
from sandbox.protocol import worker_main
worker_main()
""".strip()

USER_CODE_FILENAME = "<user-code>"


def _format_error(exc: BaseException) -> str:
    return f"{exc.__class__.__name__}: {exc}"


def _silence_fd(fd: int) -> None:
    devnull = os.open(os.devnull, os.O_RDWR)
    try:
        os.dup2(devnull, fd)
    finally:
        os.close(devnull)


def _open_channel() -> tuple[TextIO, TextIO]:
    proto_in = os.fdopen(os.dup(0), "r", encoding="utf-8")
    proto_out = os.fdopen(os.dup(1), "w", encoding="utf-8")
    _silence_fd(0)
    _silence_fd(1)
    # input() must not consume protocol frames
    sys.stdin = io.StringIO("")
    return proto_in, proto_out


def _send(channel: TextIO, frame: dict[str, object]) -> None:
    _ = channel.write(json.dumps(frame) + "\n")
    channel.flush()


class Worker:
    """Executes requests against one persistent namespace."""

    def __init__(self) -> None:
        self.namespace: dict[str, object] = {
            "__name__": "__main__",
            "__builtins__": builtins,
        }
        self.streams = RedirectedStreams()

    def handle(self, request: dict[str, object]) -> dict[str, object]:
        op = request.get("op")
        if op == "run":
            return self._run(str(request.get("code") or ""))
        if op == "clear":
            self.streams.clear()
            return {"ok": True}
        if op == "read":
            return {
                "ok": True,
                "stdout": self.streams.read_stdout(),
                "stderr": self.streams.read_stderr(),
            }
        if op == "install_redirect":
            self.streams.install_redirect()
            _silence_fd(2)
            return {"ok": True}
        return {"ok": False, "error": f"Unknown op: {op!r}"}

    def _run(self, code: str) -> dict[str, object]:
        try:
            compiled = compile(code, USER_CODE_FILENAME, "exec")
            exec(compiled, self.namespace)
        except BaseException as exc:  # noqa: BLE001 - user code may raise anything
            tb = exc.__traceback__
            # drop this frame, keep the user's
            if tb is not None and tb.tb_next is not None:
                tb = tb.tb_next
            return {
                "ok": False,
                "error": _format_error(exc),
                "error_type": exc.__class__.__name__,
                "traceback": "".join(traceback.format_exception(type(exc), exc, tb)),
            }
        return {"ok": True}


def worker_main() -> None:
    """Entry point for the sandbox worker process."""
    proto_in, proto_out = _open_channel()
    worker = Worker()
    _send(proto_out, {"ready": True, "python": platform.python_version()})

    while True:
        line = proto_in.readline()
        if not line:
            break
        line = line.strip()
        if not line:
            continue
        try:
            request = cast(dict[str, object], json.loads(line))
        except json.JSONDecodeError as exc:
            _send(proto_out, {"id": None, "ok": False, "error": f"Invalid request: {exc}"})
            continue
        response = worker.handle(request)
        response["id"] = request.get("id")
        _send(proto_out, response)


if __name__ == "__main__":
    worker_main()
