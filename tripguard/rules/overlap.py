"""Overlap rules: flights vs flights/hotels, hotels vs same-named hotels."""

from tripguard.rules.base import BaseRule, register_rule
from tripguard.models import FlightSegment, HotelSegment, SegmentType, Severity
from tripguard.intervals import (
    datetimes_overlap,
    normalize_for_comparison,
    ranges_overlap,
    shares_travelers,
)


@register_rule
class NoFlightOverlapRule(BaseRule):
    """A flight cannot overlap another flight or a hotel stay for the same travelers.

    Hotel stays are compared on their exact start/end timestamps (check-in
    and check-out times), so arriving on check-in day is not a conflict.
    """

    rule_id = "no-flight-overlap"
    rule_name = "No Flight Overlap"
    description = "Flights cannot overlap with each other or with hotel stays"
    segment_types = (SegmentType.FLIGHT,)

    def evaluate(self, itinerary, candidate):
        if not isinstance(candidate, FlightSegment):
            return self.ok()

        overlapping = [
            seg
            for seg in itinerary.segments
            if seg.id != candidate.id
            and isinstance(seg, (FlightSegment, HotelSegment))
            and shares_travelers(candidate, seg)
            and datetimes_overlap(
                candidate.start_datetime,
                candidate.end_datetime,
                seg.start_datetime,
                seg.end_datetime,
            )
        ]
        if overlapping:
            first = overlapping[0]
            return self.fail(
                f"Flight {candidate.flight_number} overlaps with existing "
                f"{first.type.lower()} {first.label}",
                "Adjust flight times or remove conflicting segments",
                [s.id for s in overlapping],
            )
        return self.ok()


@register_rule
class NoHotelOverlapRule(BaseRule):
    """The same property cannot be booked twice for overlapping nights."""

    rule_id = "no-hotel-overlap"
    rule_name = "No Hotel Overlap"
    description = "Cannot hold overlapping stays at the same property"
    segment_types = (SegmentType.HOTEL,)

    def evaluate(self, itinerary, candidate):
        if not isinstance(candidate, HotelSegment):
            return self.ok()

        name = normalize_for_comparison(candidate.property_name)
        overlapping = [
            seg
            for seg in itinerary.segments
            if seg.id != candidate.id
            and isinstance(seg, HotelSegment)
            and normalize_for_comparison(seg.property_name) == name
            and ranges_overlap(
                candidate.check_in_date,
                candidate.check_out_date,
                seg.check_in_date,
                seg.check_out_date,
            )
        ]
        if overlapping:
            return self.fail(
                f"Hotel {candidate.property_name} overlaps with an existing stay "
                f"({overlapping[0].check_in_date} to {overlapping[0].check_out_date})",
                "Adjust check-in/check-out dates or remove one booking",
                [s.id for s in overlapping],
            )
        return self.ok()


@register_rule
class HotelActivityOverlapAllowedRule(BaseRule):
    """Activities during a hotel stay are expected; never a conflict.

    Exists so that an overlap rule is never applied to the hotel/activity
    pair. Disabled by default because it always passes.
    """

    rule_id = "hotel-activity-overlap-allowed"
    rule_name = "Hotel-Activity Overlap Allowed"
    description = "Hotels can overlap with activities - this is expected"
    severity = Severity.INFO
    segment_types = (SegmentType.HOTEL, SegmentType.ACTIVITY)
    enabled = False

    def evaluate(self, itinerary, candidate):
        return self.ok()
