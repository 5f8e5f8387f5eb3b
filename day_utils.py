"""
Day Utilities for the Room Status Tracker.

Handles the hotel-local calendar day, timestamps, and retention cutoffs.
"""
from datetime import date, datetime, timedelta
import os
import zoneinfo

# Define Timezone
TIMEZONE = zoneinfo.ZoneInfo(os.environ.get("APP_TIMEZONE", "Asia/Bangkok"))

SNAPSHOT_RETENTION_DAYS = 30
RESOLVED_TASK_RETENTION_DAYS = 90


def get_current_time():
    """Get current time in app timezone."""
    return datetime.now(TIMEZONE)


def get_today(current_dt=None):
    """
    Get the hotel-local calendar date.

    Args:
        current_dt (datetime, optional): Time to check. Defaults to now.

    Returns:
        str: ISO date (YYYY-MM-DD), the format every date column is stored in.
    """
    if current_dt is None:
        current_dt = get_current_time()
    return current_dt.date().isoformat()


def local_timestamp(current_dt=None) -> str:
    if current_dt is None:
        current_dt = get_current_time()
    return current_dt.strftime("%Y-%m-%d %H:%M:%S")


def parse_date(value) -> date | None:
    """
    Parse a YYYY-MM-DD string into a date.

    Returns None for empty or malformed input.
    """
    if isinstance(value, date):
        return value
    value = (value or "").strip()
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


def retention_cutoff(days: int, today=None) -> str:
    """ISO date `days` before today; rows dated strictly before it are stale."""
    if today is None:
        today = get_today()
    return (parse_date(today) - timedelta(days=days)).isoformat()
