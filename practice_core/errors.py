"""Error taxonomy for the sandbox runtime."""

from __future__ import annotations


class SandboxError(Exception):
    """Base class for sandbox failures that escape a result object."""


class BootstrapError(SandboxError):
    """The interpreter could not be started or initialized."""


class WorkerProtocolError(SandboxError):
    """The worker died or sent a frame that does not follow the protocol."""
