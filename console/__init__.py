"""
Console Module

Configuration and command line interface.

This module provides:
- YAML-based runner configuration
- CLI for running code, checking solutions, and verifying problem sets
"""

__version__ = "0.1.0"
