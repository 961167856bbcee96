"""
Timezone utilities for deadline handling.
Portal deadlines are published in Brussels local time.
"""

from datetime import date, datetime
import zoneinfo

# Canonical timezone for all deadline comparisons
TZ_BRUSSELS = zoneinfo.ZoneInfo("Europe/Brussels")


def now_brussels() -> datetime:
    """
    Get current datetime in Brussels local time.

    Returns:
        datetime: Current time with Europe/Brussels timezone
    """
    return datetime.now(TZ_BRUSSELS)


def today_brussels() -> date:
    """Current calendar date in Brussels."""
    return now_brussels().date()


def utc_timestamp() -> str:
    """ISO timestamp used for last_enriched / created_at fields."""
    return datetime.now(zoneinfo.ZoneInfo("UTC")).isoformat()
