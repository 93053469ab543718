"""
Date helpers.

The HR backend filters attendance and location history by calendar date
(`YYYY-MM-DD`). "Today" is always evaluated in the configured app timezone so the
CLI and the API agree regardless of the host's local time.
"""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo


def today(timezone: str) -> date:
    """Return the current calendar date in `timezone`."""
    return datetime.now(ZoneInfo(timezone)).date()


def parse_date(value: str | date | None, timezone: str) -> date:
    """Parse a `YYYY-MM-DD` string; None/empty means today in `timezone`."""
    if value is None:
        return today(timezone)
    if isinstance(value, date):
        return value
    value = value.strip()
    if not value:
        return today(timezone)
    return date.fromisoformat(value)
