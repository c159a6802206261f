# Functions for working with UTC timestamps

from datetime import datetime, timezone


def now_utc_dt():
    return datetime.now(timezone.utc)

def now_utc_iso():
    return datetime.now(timezone.utc).isoformat()

def to_iso(dt):
    return dt.isoformat() if dt is not None else None

def next_boundary(dt, interval_seconds):
    """First multiple of ``interval_seconds`` since the epoch strictly after ``dt``."""
    step = (int(dt.timestamp()) // interval_seconds + 1) * interval_seconds
    return datetime.fromtimestamp(step, timezone.utc)
