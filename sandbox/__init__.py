"""
Sandbox Module

Lazily bootstrapped execution environment for learner-submitted code.

This module provides:
- A single-flight runtime loader with an explicit readiness state machine
- A long-lived worker interpreter with a persistent global namespace
- Stdout/stderr redirection into clearable in-memory buffers
- Hard timeout enforcement (the worker is killed and replaced)
- An execution lock so concurrent callers never share output buffers

WARNING: This sandbox is NOT a security boundary. User code runs as a normal
Python process with the caller's privileges and no resource quotas.
"""

__version__ = "0.1.0"
