"""Duplicate detection for candidate segments.

A duplicate is a candidate that describes the same real-world booking as a
segment already on the itinerary. Matching is type-specific:

- FLIGHT: same flight number, departing the same calendar day
- HOTEL: same property name, overlapping stay (back-to-back is fine)
- ACTIVITY: same name, same calendar day
- TRANSFER: same mode, pickup, and dropoff on the same calendar day
- MEETING / CUSTOM: same title, starting within the instant tolerance
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from tripguard.intervals import (
    format_day,
    is_same_calendar_day,
    is_same_instant,
    normalize_for_comparison,
    ranges_overlap,
)
from tripguard.models import Segment, SegmentType

logger = logging.getLogger(__name__)

_UPDATE_PROMPT = "Would you like to update it instead?"


@dataclass
class DuplicateMatch:
    """An existing segment that a candidate duplicates."""

    existing: Segment
    message: str


def _same_text(a: Optional[str], b: Optional[str]) -> bool:
    return normalize_for_comparison(a) == normalize_for_comparison(b)


class DuplicateResolver:
    """Decides whether a candidate segment is already on the itinerary."""

    def __init__(self, instant_tolerance_minutes: float = 1) -> None:
        self.instant_tolerance_minutes = instant_tolerance_minutes
        self._matchers: dict[SegmentType, Callable[[Segment, Segment], bool]] = {
            SegmentType.FLIGHT: self._same_flight,
            SegmentType.HOTEL: self._same_hotel,
            SegmentType.ACTIVITY: self._same_activity,
            SegmentType.TRANSFER: self._same_transfer,
            SegmentType.MEETING: self._same_titled_event,
            SegmentType.CUSTOM: self._same_titled_event,
        }

    def find_duplicate(
        self,
        existing_segments: Iterable[Segment],
        candidate: Segment,
        exclude_id: Optional[str] = None,
    ) -> Optional[DuplicateMatch]:
        """Return the first existing segment the candidate duplicates, or None.

        Args:
            existing_segments: Segments currently on the itinerary.
            candidate: Segment about to be added or written.
            exclude_id: Segment id to skip (the segment being updated).
        """
        for existing in existing_segments:
            if exclude_id is not None and existing.id == exclude_id:
                continue
            if self.is_duplicate(existing, candidate):
                logger.debug("Segment %s duplicates existing %s", candidate.id, existing.id)
                return DuplicateMatch(
                    existing=existing,
                    message=self.build_message(existing, candidate),
                )
        return None

    def is_duplicate(self, existing: Segment, candidate: Segment) -> bool:
        if existing.type != candidate.type:
            return False
        return self._matchers[candidate.segment_type](existing, candidate)

    # --- Type-specific matchers ---

    def _same_flight(self, existing, candidate) -> bool:
        return existing.flight_number == candidate.flight_number and is_same_calendar_day(
            existing.start_datetime, candidate.start_datetime
        )

    def _same_hotel(self, existing, candidate) -> bool:
        return _same_text(existing.property_name, candidate.property_name) and ranges_overlap(
            existing.check_in_date,
            existing.check_out_date,
            candidate.check_in_date,
            candidate.check_out_date,
        )

    def _same_activity(self, existing, candidate) -> bool:
        return _same_text(existing.name, candidate.name) and is_same_calendar_day(
            existing.start_datetime, candidate.start_datetime
        )

    def _same_transfer(self, existing, candidate) -> bool:
        return (
            existing.transfer_type == candidate.transfer_type
            and _same_text(existing.pickup_location.name, candidate.pickup_location.name)
            and _same_text(existing.dropoff_location.name, candidate.dropoff_location.name)
            and is_same_calendar_day(existing.start_datetime, candidate.start_datetime)
        )

    def _same_titled_event(self, existing, candidate) -> bool:
        return _same_text(existing.title, candidate.title) and is_same_instant(
            existing.start_datetime,
            candidate.start_datetime,
            self.instant_tolerance_minutes,
        )

    # --- Messages ---

    @staticmethod
    def build_message(existing: Segment, candidate: Segment) -> str:
        """User-facing explanation that suggests updating instead of adding."""
        day = format_day(candidate.start_datetime)
        seg_type = candidate.segment_type

        if seg_type == SegmentType.FLIGHT:
            what = f"Flight {candidate.flight_number} is already on your itinerary for {day}."
        elif seg_type == SegmentType.HOTEL:
            what = f'"{candidate.property_name}" is already booked with overlapping dates.'
        elif seg_type == SegmentType.TRANSFER:
            what = (
                f"A {candidate.transfer_type.value.lower()} transfer is already "
                f"scheduled for {day}."
            )
        elif seg_type == SegmentType.MEETING:
            what = f'Meeting "{candidate.title}" is already scheduled for {day}.'
        else:
            what = f'"{candidate.label}" is already on your itinerary for {day}.'

        return f"Duplicate detected: {what} {_UPDATE_PROMPT}"
