# fms/core/clock.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    # Naive UTC; SQLite drops tzinfo on the way back so everything stays naive
    return datetime.now(timezone.utc).replace(tzinfo=None)
