"""
Command-line interface for stickermock.

This package contains CLI implementations using Click.
Uses only the public API: from stickermock import ...
"""

from stickermock.cli.commands import cli, main

__all__ = ["cli", "main"]
