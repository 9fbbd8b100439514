"""Utility exports."""

from .file_helper import atomic_write_text, ensure_parent
from .logging import configure_logging, get_logger

__all__ = [
    "atomic_write_text",
    "ensure_parent",
    "configure_logging",
    "get_logger",
]
