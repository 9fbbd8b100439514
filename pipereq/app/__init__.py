"""Command-line entry points."""

from .cli import main

__all__ = ["main"]
