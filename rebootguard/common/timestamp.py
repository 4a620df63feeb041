"""
Timestamp Utilities

Clock helpers shared by the engine and the orchestrator:
- timezone-aware "now" and ISO-8601 round-tripping
- deadline computation (today at the enforcement hour)
- reboot window membership (wraps past midnight)

Every datetime that leaves this module is timezone-aware.

Examples:
    # Window 22 -> 5 wraps past midnight:
    # 23:10 -> inside, 04:59 -> inside, 05:00 -> outside, 21:59 -> outside

    # Deadline hour 22 at 14:00 -> today 22:00
    # Deadline hour 22 at 23:30 -> today 22:00 (already passed)
"""

import math
from datetime import datetime, timedelta, timezone


def local_now() -> datetime:
    """Current local time, timezone-aware"""
    return datetime.now().astimezone()


def ensure_aware(ts: datetime) -> datetime:
    """Attach the local timezone to a naive datetime"""
    if ts.tzinfo is None:
        return ts.astimezone()
    return ts


def to_iso(ts: datetime) -> str:
    """Serialize with microseconds and an explicit UTC offset"""
    return ensure_aware(ts).isoformat(timespec="microseconds")


def parse_iso(ts_iso: str) -> datetime:
    """
    Parse an ISO-8601 timestamp.

    Accepts a trailing "Z". Naive values are read as local time.

    Raises:
        ValueError: If the string is not a valid timestamp
    """
    if not isinstance(ts_iso, str) or not ts_iso:
        raise ValueError(f"Not a timestamp: {ts_iso!r}")

    ts_clean = ts_iso.strip().replace("Z", "+00:00")
    return ensure_aware(datetime.fromisoformat(ts_clean))


def minutes_until(target: datetime, now: datetime) -> float:
    """Minutes from now until target, negative once target has passed"""
    return (ensure_aware(target) - ensure_aware(now)).total_seconds() / 60.0


def minutes_since(earlier: datetime, now: datetime) -> float:
    """Minutes elapsed since earlier, clamped at zero for clock skew"""
    return max(0.0, -minutes_until(earlier, now))


def ceil_minutes(minutes: float) -> int:
    """Round remaining minutes up for display (25.0 -> 25, 24.2 -> 25)"""
    return max(0, math.ceil(minutes))


def compute_deadline(now: datetime, hour: int) -> datetime:
    """
    Today at hour:00 in the timezone of now.

    Args:
        now: Current time (timezone-aware)
        hour: Enforcement hour, 0-23

    Returns:
        Deadline datetime for the current calendar day
    """
    now = ensure_aware(now)
    return now.replace(hour=hour, minute=0, second=0, microsecond=0)


def in_window(now: datetime, start_hour: int, end_hour: int) -> bool:
    """
    Check if the clock hour of now is inside [start_hour, end_hour).

    start > end wraps past midnight. start == end is an always-open window.
    """
    hour = ensure_aware(now).hour

    if start_hour == end_hour:
        return True
    if start_hour < end_hour:
        return start_hour <= hour < end_hour
    return hour >= start_hour or hour < end_hour


def uptime_days(uptime: timedelta) -> float:
    """Uptime as fractional days"""
    return max(0.0, uptime.total_seconds()) / 86400.0


def utc_now_iso() -> str:
    """Current UTC time as ISO string (record metadata)"""
    return datetime.now(timezone.utc).isoformat()
