"""
Time Interface.

All timestamps are UTC and timezone-aware.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    """Clock used for recency scoring and store-assigned timestamps."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
