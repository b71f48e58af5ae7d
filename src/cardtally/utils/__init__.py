"""Utility modules."""

from .dates import civil_now, civil_timezone, format_date_range, from_timestamp
from .logging import setup_logging

__all__ = [
    "civil_now",
    "civil_timezone",
    "format_date_range",
    "from_timestamp",
    "setup_logging",
]
