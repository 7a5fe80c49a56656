"""
Time helpers
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how the database columns store time"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
