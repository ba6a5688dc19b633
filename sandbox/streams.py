"""
Stream redirection for the sandbox interpreter.

Replaces ``sys.stdout``/``sys.stderr`` with in-memory accumulators so that
everything user code prints can be cleared before and read back after each
run. Imported by the worker process, so it must stay stdlib-only.
"""

from __future__ import annotations

import io
import sys
from typing import TextIO


class OutputBuffer:
    """Append-only text sink that can be reset between runs."""

    def __init__(self) -> None:
        self._buffer = io.StringIO()

    def write(self, text: str) -> int:
        return self._buffer.write(text)

    def writelines(self, lines: list[str]) -> None:
        for line in lines:
            self._buffer.write(line)

    def getvalue(self) -> str:
        return self._buffer.getvalue()

    def clear(self) -> None:
        self._buffer = io.StringIO()

    def flush(self) -> None:
        pass

    def isatty(self) -> bool:
        return False

    def writable(self) -> bool:
        return True

    @property
    def encoding(self) -> str:
        return "utf-8"


class RedirectedStreams:
    """The stdout/stderr accumulator pair owned by one interpreter."""

    def __init__(self) -> None:
        self.stdout = OutputBuffer()
        self.stderr = OutputBuffer()
        self._saved: tuple[TextIO, TextIO] | None = None

    @property
    def installed(self) -> bool:
        return self._saved is not None

    def install_redirect(self) -> None:
        """Point ``sys.stdout``/``sys.stderr`` at the accumulators."""
        if self._saved is None:
            self._saved = (sys.stdout, sys.stderr)
        sys.stdout = self.stdout  # type: ignore[assignment]
        sys.stderr = self.stderr  # type: ignore[assignment]

    def restore(self) -> None:
        if self._saved is None:
            return
        sys.stdout, sys.stderr = self._saved
        self._saved = None

    def clear(self) -> None:
        self.stdout.clear()
        self.stderr.clear()

    def read_stdout(self) -> str:
        return self.stdout.getvalue()

    def read_stderr(self) -> str:
        return self.stderr.getvalue()
