"""Interval and date helpers shared by the rules and duplicate detection.

All timestamps are timezone-naive and compared in the frame they were
stored in; nothing here converts between timezones.
"""

import math
from datetime import date, datetime, timedelta
from typing import Optional, Union

from tripguard.models import (
    ActivitySegment,
    CustomSegment,
    FlightSegment,
    HotelSegment,
    Location,
    MeetingSegment,
    Segment,
    TransferSegment,
)

DateLike = Union[date, datetime]

# Gaps longer than this that also cross midnight count as overnight
OVERNIGHT_GAP_MINUTES = 240


def _as_day(value: DateLike) -> date:
    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return value.date()
    return value


def format_day(value: DateLike) -> str:
    """Format a date for messages, e.g. "January 10, 2025"."""
    day = _as_day(value)
    return f"{day:%B} {day.day}, {day.year}"


def is_same_calendar_day(a: Optional[DateLike], b: Optional[DateLike]) -> bool:
    """True if both timestamps fall on the same year/month/day."""
    if a is None or b is None:
        return False
    return _as_day(a) == _as_day(b)


def is_same_instant(
    a: Optional[datetime], b: Optional[datetime], tolerance_minutes: float = 1
) -> bool:
    """True if the two timestamps are within ``tolerance_minutes`` of each other."""
    if a is None or b is None:
        return False
    return abs(a - b) <= timedelta(minutes=tolerance_minutes)


def ranges_overlap(
    start_a: DateLike, end_a: DateLike, start_b: DateLike, end_b: DateLike
) -> bool:
    """Day-granularity overlap test.

    Both ranges are truncated to whole days first, and the end day is
    exclusive: a check-out on day N and a check-in on day N are adjacent,
    not overlapping.
    """
    s1, e1 = _as_day(start_a), _as_day(end_a)
    s2, e2 = _as_day(start_b), _as_day(end_b)
    return s1 < e2 and s2 < e1


def datetimes_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Exact overlap test on half-open datetime ranges."""
    return start_a < end_b and start_b < end_a


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from ``start`` to ``end`` (negative if reversed)."""
    return round((end - start).total_seconds() / 60)


def duration_minutes(segment: Segment) -> int:
    """Length of a segment in minutes."""
    return minutes_between(segment.start_datetime, segment.end_datetime)


def has_overnight_gap(end_a: datetime, start_b: datetime) -> bool:
    """True if the gap exceeds four hours and crosses at least one midnight."""
    if minutes_between(end_a, start_b) <= OVERNIGHT_GAP_MINUTES:
        return False
    return start_b.date() > end_a.date()


def normalize_for_comparison(value: Optional[str]) -> str:
    """Lowercase, trim, and drop every non-alphanumeric character.

    >>> normalize_for_comparison("La Villa!") == normalize_for_comparison("LA-VILLA")
    True
    """
    if not value:
        return ""
    return "".join(ch for ch in value.strip().lower() if ch.isalnum())


def segment_location(segment: Segment) -> Optional[Location]:
    """Primary location of a segment: where the traveler ends up."""
    if isinstance(segment, FlightSegment):
        return segment.destination
    if isinstance(segment, TransferSegment):
        return segment.dropoff_location
    if isinstance(segment, (HotelSegment, ActivitySegment, MeetingSegment, CustomSegment)):
        return segment.location
    return None


def locations_match(a: Location, b: Location) -> bool:
    """Compare two locations by coordinates, then city, then name."""
    if a.coordinates and b.coordinates:
        return math.isclose(
            a.coordinates.latitude, b.coordinates.latitude, abs_tol=1e-4
        ) and math.isclose(a.coordinates.longitude, b.coordinates.longitude, abs_tol=1e-4)
    if a.city and b.city:
        return normalize_for_comparison(a.city) == normalize_for_comparison(b.city)
    return normalize_for_comparison(a.name) == normalize_for_comparison(b.name)


def shares_travelers(a: Segment, b: Segment) -> bool:
    """True if two segments involve at least one common traveler.

    A segment with no traveler references applies to the whole party.
    """
    if not a.traveler_ids or not b.traveler_ids:
        return True
    return bool(set(a.traveler_ids) & set(b.traveler_ids))
