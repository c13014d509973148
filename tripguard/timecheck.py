"""Time-of-day plausibility checks for segments.

Flags segments whose start hour doesn't fit what they are: a "dinner" at
10 AM, a museum visit at 3 AM, a noon hotel check-in. Results are advisory
and never gate a mutation.
"""

from datetime import datetime
from typing import NamedTuple, Optional

from tripguard.models import (
    ActivitySegment,
    CustomSegment,
    FlightSegment,
    HotelSegment,
    MeetingSegment,
    Segment,
    SegmentTimeIssue,
    Severity,
    TimeCheck,
    TimeIssueCategory,
    TransferSegment,
)


class TimeWindow(NamedTuple):
    """Expected start-hour window; ``max_hour < min_hour`` wraps past midnight."""

    min_hour: int
    max_hour: int
    suggested: str
    description: str


TIME_KEYWORDS: dict[str, TimeWindow] = {
    "late night": TimeWindow(22, 3, "22:00", "10 PM - 3 AM"),
    "midnight": TimeWindow(23, 2, "00:00", "11 PM - 2 AM"),
    "night": TimeWindow(20, 3, "21:00", "8 PM - 3 AM"),
    "evening": TimeWindow(17, 22, "19:00", "5 PM - 10 PM"),
    "sunset": TimeWindow(16, 20, "18:00", "4 PM - 8 PM"),
    "afternoon": TimeWindow(12, 18, "14:00", "12 PM - 6 PM"),
    "lunch": TimeWindow(11, 15, "12:00", "11 AM - 3 PM"),
    "brunch": TimeWindow(10, 14, "11:00", "10 AM - 2 PM"),
    "morning": TimeWindow(6, 12, "09:00", "6 AM - 12 PM"),
    "sunrise": TimeWindow(5, 8, "06:00", "5 AM - 8 AM"),
    "breakfast": TimeWindow(6, 11, "08:00", "6 AM - 11 AM"),
    "early morning": TimeWindow(5, 9, "07:00", "5 AM - 9 AM"),
    "dinner": TimeWindow(17, 22, "19:00", "5 PM - 10 PM"),
}

# Longer keywords first so "late night" wins over "night"
_KEYWORDS_BY_LENGTH = sorted(TIME_KEYWORDS.items(), key=lambda kv: len(kv[0]), reverse=True)


def is_in_window(hour: int, min_hour: int, max_hour: int) -> bool:
    """Inclusive hour-window test that handles windows wrapping past midnight."""
    if max_hour < min_hour:
        return hour >= min_hour or hour <= max_hour
    return min_hour <= hour <= max_hour


def format_hour(hour: int, minutes: int = 0) -> str:
    """12-hour clock, e.g. "9:00 AM", "12:30 PM"."""
    period = "PM" if hour >= 12 else "AM"
    display = 12 if hour % 12 == 0 else hour % 12
    return f"{display}:{minutes:02d} {period}"


def _issue(
    severity: Severity,
    issue: str,
    category: TimeIssueCategory,
    suggested_time: Optional[str] = None,
    details: str = "",
) -> TimeCheck:
    return TimeCheck(
        is_valid=False,
        severity=severity,
        issue=issue,
        details=details,
        suggested_time=suggested_time,
        category=category,
    )


def _keyword_text(segment: Segment) -> Optional[str]:
    if isinstance(segment, ActivitySegment):
        return segment.name
    if isinstance(segment, (MeetingSegment, CustomSegment)):
        return segment.title
    return None


def _check_keywords(segment: Segment) -> Optional[TimeCheck]:
    """Check named segments against time words in their name.

    Returns None when no keyword matches, so type-specific checks run.
    """
    text = _keyword_text(segment)
    if not text:
        return None

    lowered = text.lower()
    start = segment.start_datetime
    for keyword, window in _KEYWORDS_BY_LENGTH:
        if keyword not in lowered:
            continue
        if is_in_window(start.hour, window.min_hour, window.max_hour):
            # A matching keyword at the right time overrides type heuristics
            return TimeCheck()
        return _issue(
            Severity.WARNING,
            f'"{keyword}" activity scheduled outside expected time',
            TimeIssueCategory.SEMANTIC_MISMATCH,
            suggested_time=window.suggested,
            details=(
                f'"{keyword}" activities are typically {window.description}, '
                f"but this is scheduled at {format_hour(start.hour, start.minute)}"
            ),
        )
    return None


def _check_dining(hour: int) -> TimeCheck:
    if 6 <= hour < 11:
        if hour < 7:
            return _issue(
                Severity.WARNING,
                "Very early for breakfast (most restaurants open 7-8 AM)",
                TimeIssueCategory.MEAL_TIMING,
                "08:00",
            )
        return TimeCheck()
    if 11 <= hour < 15 or 17 <= hour < 23:
        return TimeCheck()
    if hour >= 23 or hour < 2:
        return _issue(
            Severity.WARNING,
            "Late dining time (most restaurants close by midnight)",
            TimeIssueCategory.MEAL_TIMING,
            "19:00",
        )
    if 2 <= hour < 6:
        return _issue(
            Severity.ERROR,
            "Too early for dining (most restaurants closed)",
            TimeIssueCategory.TOO_EARLY,
            "08:00",
        )
    # 15:00-17:00, between lunch and dinner service
    return _issue(Severity.INFO, "Unusual time for dining", TimeIssueCategory.UNUSUAL, "12:00")


def _check_activity(segment: ActivitySegment) -> TimeCheck:
    hour = segment.start_datetime.hour
    if segment.is_dining:
        return _check_dining(hour)

    if 8 <= hour < 22:
        return TimeCheck()
    if 6 <= hour < 8:
        return _issue(
            Severity.WARNING,
            "Early for most attractions (usually open 9 AM - 10 AM)",
            TimeIssueCategory.BUSINESS_HOURS,
            "09:00",
        )
    if 4 <= hour < 6:
        return _issue(
            Severity.ERROR,
            "Too early for most attractions (gardens, museums typically open 9 AM)",
            TimeIssueCategory.TOO_EARLY,
            "09:00",
        )
    if hour < 4:
        return _issue(
            Severity.ERROR,
            "Overnight hours - most attractions closed",
            TimeIssueCategory.TOO_EARLY,
            "10:00",
        )
    return _issue(
        Severity.WARNING,
        "Late for most attractions (typically close by 6-8 PM)",
        TimeIssueCategory.TOO_LATE,
        "14:00",
    )


def _check_flight(segment: FlightSegment) -> TimeCheck:
    if 1 <= segment.start_datetime.hour < 5:
        return _issue(
            Severity.INFO,
            "Red-eye or very early morning flight (verify departure time)",
            TimeIssueCategory.UNUSUAL,
        )
    return TimeCheck()


def _check_hotel(segment: HotelSegment) -> TimeCheck:
    hour = segment.start_datetime.hour
    if hour < 12:
        return _issue(
            Severity.WARNING,
            "Early check-in (standard is 3 PM, early check-in may require extra fee)",
            TimeIssueCategory.BUSINESS_HOURS,
            "15:00",
        )
    if hour >= 23:
        return _issue(
            Severity.WARNING,
            "Very late check-in (verify 24-hour reception)",
            TimeIssueCategory.UNUSUAL,
        )
    return TimeCheck()


def _check_transfer(segment: TransferSegment) -> TimeCheck:
    if 1 <= segment.start_datetime.hour < 5:
        return _issue(
            Severity.INFO,
            "Overnight transfer (verify service availability)",
            TimeIssueCategory.UNUSUAL,
        )
    return TimeCheck()


def validate_segment_time(segment: Segment) -> TimeCheck:
    """Check a segment's start time against its name and type."""
    keyword_check = _check_keywords(segment)
    if keyword_check is not None:
        return keyword_check

    if isinstance(segment, ActivitySegment):
        return _check_activity(segment)
    if isinstance(segment, FlightSegment):
        return _check_flight(segment)
    if isinstance(segment, HotelSegment):
        return _check_hotel(segment)
    if isinstance(segment, TransferSegment):
        return _check_transfer(segment)
    # Meetings and custom segments have no type-specific expectations
    return TimeCheck()


def validate_itinerary_times(segments: list[Segment]) -> list[SegmentTimeIssue]:
    """Return every segment whose time check fails."""
    issues = []
    for seg in segments:
        check = validate_segment_time(seg)
        if not check.is_valid:
            issues.append(SegmentTimeIssue(segment=seg, check=check))
    return issues


def summarize_time_issues(issues: list[SegmentTimeIssue]) -> dict:
    """Count issues in total, by category, and by severity."""
    by_category: dict[str, int] = {}
    by_severity: dict[str, int] = {s.value: 0 for s in Severity}

    for item in issues:
        if item.check.category is not None:
            key = item.check.category.value
            by_category[key] = by_category.get(key, 0) + 1
        if item.check.severity is not None:
            by_severity[item.check.severity.value] += 1

    return {"total": len(issues), "by_category": by_category, "by_severity": by_severity}


def apply_time_fix(segment: Segment, suggested_time: str) -> Segment:
    """Move a segment to ``suggested_time`` ("HH:MM") on the same day, keeping its duration."""
    hours, minutes = (int(part) for part in suggested_time.split(":"))
    start: datetime = segment.start_datetime.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    duration = segment.end_datetime - segment.start_datetime
    update = {"start_datetime": start, "end_datetime": start + duration}
    if isinstance(segment, HotelSegment):
        update["check_in_date"] = start.date()
        update["check_out_date"] = (start + duration).date()
    return segment.model_copy(update=update)
