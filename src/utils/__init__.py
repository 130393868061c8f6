"""Utility functions."""

from src.utils.audit import log_action

__all__ = [
    "log_action",
]
