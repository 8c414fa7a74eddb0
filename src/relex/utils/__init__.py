"""Utility modules for relex.

Provides:
- logger: get_logger for logging
"""

from relex.utils.logger import get_logger

__all__ = [
    "get_logger",
]
