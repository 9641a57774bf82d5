"""
Time rules for time clock scans.
Handles weekday shift windows, tolerance and timezone conversion.
"""
from datetime import datetime, time, timedelta
from typing import Dict, List, Optional, Tuple
import pytz
from ..config import settings


# Weekdays are indexed 0 = Sunday .. 6 = Saturday
DEFAULT_SCHEDULE: List[Dict] = [
    {"weekday": 0, "active": False, "start": "09:00", "end": "18:00"},
    {"weekday": 1, "active": True, "start": "09:00", "end": "18:00"},
    {"weekday": 2, "active": True, "start": "09:00", "end": "18:00"},
    {"weekday": 3, "active": True, "start": "09:00", "end": "18:00"},
    {"weekday": 4, "active": True, "start": "09:00", "end": "18:00"},
    {"weekday": 5, "active": True, "start": "09:00", "end": "18:00"},
    {"weekday": 6, "active": True, "start": "09:00", "end": "14:00"},
]


def default_schedule() -> List[Dict]:
    return [dict(day) for day in DEFAULT_SCHEDULE]


def weekday_index(dt: datetime) -> int:
    """Python's Monday=0 weekday mapped to the Sunday=0 convention."""
    return (dt.weekday() + 1) % 7


def parse_hhmm(value: str) -> time:
    hours, minutes = str(value).strip().split(":")[:2]
    return time(int(hours), int(minutes))


def _zone(timezone_str: Optional[str] = None):
    return pytz.timezone(timezone_str or settings.tz_default)


def utc_to_local(dt_utc: datetime, timezone_str: Optional[str] = None) -> datetime:
    tz = _zone(timezone_str)
    if dt_utc.tzinfo is None:
        dt_utc = pytz.UTC.localize(dt_utc)
    return dt_utc.astimezone(tz)


def window_for(schedule: Optional[List[Dict]], weekday: int) -> Optional[Dict]:
    for day in schedule or []:
        try:
            if int(day.get("weekday")) == weekday:
                return day
        except (TypeError, ValueError):
            continue
    return None


def evaluate_scan(
    scanned_at_utc: datetime,
    direction: str,
    schedule: Optional[List[Dict]],
    tolerance_minutes: Optional[int] = None,
    timezone_str: Optional[str] = None,
) -> Tuple[str, Optional[int]]:
    """
    Classify a scan against the weekday shift window.

    Returns:
        (status, minutes_off) where status is one of on_time|late|early|unscheduled
        and minutes_off is the signed distance to the expected time (positive = after).
    """
    if tolerance_minutes is None:
        tolerance_minutes = settings.tolerance_window_min

    local = utc_to_local(scanned_at_utc, timezone_str)
    window = window_for(schedule, weekday_index(local))
    if not window or not window.get("active"):
        return "unscheduled", None

    expected_str = window.get("start") if direction == "in" else window.get("end")
    try:
        expected_time = parse_hhmm(expected_str)
    except (TypeError, ValueError, AttributeError):
        return "unscheduled", None

    # localize on the scan date so the offset matches the expected wall time
    expected = _zone(timezone_str).localize(datetime.combine(local.date(), expected_time))
    minutes_off = int((local - expected) / timedelta(minutes=1))
    if abs(minutes_off) <= tolerance_minutes:
        return "on_time", minutes_off
    if direction == "in":
        # Arriving early is fine; only late arrivals are flagged
        return ("late", minutes_off) if minutes_off > 0 else ("on_time", minutes_off)
    return ("early", minutes_off) if minutes_off < 0 else ("on_time", minutes_off)
