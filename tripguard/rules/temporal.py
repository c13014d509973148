"""Temporal rules: start/end ordering, trip date range, plausible durations."""

from tripguard.rules.base import BaseRule, register_rule
from tripguard.models import HotelSegment, SegmentType, Severity
from tripguard.intervals import duration_minutes, format_day


@register_rule
class ChronologicalOrderRule(BaseRule):
    """Segment start must be strictly before its end."""

    rule_id = "chronological-order"
    rule_name = "Chronological Order"
    description = "Segment end time must be after start time"

    def evaluate(self, itinerary, candidate):
        if candidate.start_datetime >= candidate.end_datetime:
            return self.fail(
                "Segment start datetime must be before end datetime",
                "Adjust start or end datetime",
            )
        if isinstance(candidate, HotelSegment) and candidate.check_in_date >= candidate.check_out_date:
            return self.fail(
                f"Check-out date {candidate.check_out_date} is not after "
                f"check-in date {candidate.check_in_date}",
                "Check-out must be at least one day after check-in",
            )
        return self.ok()


@register_rule
class SegmentWithinTripDatesRule(BaseRule):
    """Segments must fall within the itinerary's trip dates, when it has them.

    Trip dates are whole days, so a segment ending late on the last day of
    the trip is still inside the range.
    """

    rule_id = "segment-within-trip-dates"
    rule_name = "Segment Within Trip Dates"
    description = "Segment must fall within itinerary start and end dates"

    def evaluate(self, itinerary, candidate):
        if not itinerary.has_trip_dates:
            return self.ok()

        starts_early = candidate.start_datetime.date() < itinerary.start_date
        ends_late = candidate.end_datetime.date() > itinerary.end_date
        if starts_early or ends_late:
            return self.fail(
                "Segment dates are outside the trip date range",
                f"Adjust segment dates to fall between {format_day(itinerary.start_date)} "
                f"and {format_day(itinerary.end_date)}",
            )
        return self.ok()


# (min, max) minutes per segment type
_DURATION_LIMITS: dict[SegmentType, tuple[int, int]] = {
    SegmentType.FLIGHT: (30, 20 * 60),
    SegmentType.ACTIVITY: (30, 12 * 60),
    SegmentType.MEETING: (15, 8 * 60),
    SegmentType.TRANSFER: (5, 6 * 60),
    SegmentType.HOTEL: (12 * 60, 30 * 24 * 60),
    SegmentType.CUSTOM: (1, 365 * 24 * 60),
}
_DINING_LIMITS = (30, 10 * 60)


@register_rule
class ReasonableDurationRule(BaseRule):
    """Warn when a segment is implausibly short or long for its type."""

    rule_id = "reasonable-duration"
    rule_name = "Reasonable Duration"
    description = "Segments should have realistic durations for their type"
    severity = Severity.WARNING

    def evaluate(self, itinerary, candidate):
        minutes = duration_minutes(candidate)
        if minutes <= 0:
            # Reported by chronological-order
            return self.ok()

        low, high = _DURATION_LIMITS[candidate.segment_type]
        if candidate.type == SegmentType.ACTIVITY and candidate.is_dining:
            low, high = _DINING_LIMITS

        if minutes < low:
            return self.fail(
                f"{candidate.type} duration ({minutes}min) is unusually short",
                f"Expected at least {low} minutes for this segment type",
                confidence=0.7,
            )
        if minutes > high:
            return self.fail(
                f"{candidate.type} duration ({round(minutes / 60)}hrs) is unusually long",
                f"Expected at most {round(high / 60)} hours for this segment type",
                confidence=0.7,
            )
        return self.ok()
