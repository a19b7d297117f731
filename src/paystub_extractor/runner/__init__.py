"""
CLI runner module.

Provides commands:
- extract: Extract a single paystub
- batch: Process several paystubs through the worker pool
- init-config: Write a default config file
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
