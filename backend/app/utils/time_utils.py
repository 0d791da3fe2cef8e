# backend/app/utils/time_utils.py

from datetime import date, datetime
import pytz


UTC = pytz.utc


def parse_trip_date(text: str) -> date:
    """
    Accepts formats like:
    - 2025-06-01
    - 2025-06-01T00:00:00 (date part is used)
    - 01/06/2025 (dd/mm/yyyy)

    Raises ValueError for anything else.
    """
    text = (text or "").strip()

    if "/" in text:
        d, m, y = text.split("/")
        return date(int(y), int(m), int(d))

    return date.fromisoformat(text[:10])


def trip_duration_days(start: date, end: date) -> int:
    """Whole-day difference; June 1 -> June 4 is 3, same day is 0."""
    return (end - start).days


def utc_now() -> datetime:
    return datetime.now(UTC)
