"""Retention cleanup for date-named Drive folders."""

from .date_pattern import DatePattern, translate_pattern
from .retention import DatedFolder, RetentionEngine, RetentionGroup, join_path

__all__ = [
    "DatePattern",
    "DatedFolder",
    "RetentionEngine",
    "RetentionGroup",
    "join_path",
    "translate_pattern",
]
