"""Transfer rules: location changes between consecutive segments."""

from datetime import datetime

from tripguard.rules.base import BaseRule, register_rule
from tripguard.models import ActivitySegment, SegmentType, Severity, TransferSegment
from tripguard.intervals import has_overnight_gap, locations_match, segment_location


def _timeline(itinerary, candidate) -> list:
    """Existing segments plus the candidate, in start-time order."""
    others = [s for s in itinerary.segments if s.id != candidate.id]
    return sorted([*others, candidate], key=lambda s: s.start_datetime)


def _has_bridging_transfer(timeline: list, after: datetime, before: datetime) -> bool:
    return any(
        isinstance(s, TransferSegment) and s.start_datetime >= after and s.end_datetime <= before
        for s in timeline
    )


def _changes_location(a, b) -> bool:
    """True only when both locations are known and differ."""
    loc_a = segment_location(a)
    loc_b = segment_location(b)
    if loc_a is None or loc_b is None:
        return False
    return not locations_match(loc_a, loc_b)


@register_rule
class ActivityRequiresTransferRule(BaseRule):
    """An activity somewhere new should be reached by a transfer.

    Exempt: same location as the previous segment, unknown locations, and
    overnight gaps.
    """

    rule_id = "activity-requires-transfer"
    rule_name = "Activity Requires Transfer"
    description = "Activities at different locations should have transfer segments"
    severity = Severity.WARNING
    segment_types = (SegmentType.ACTIVITY,)

    def evaluate(self, itinerary, candidate):
        if not isinstance(candidate, ActivitySegment):
            return self.ok()

        timeline = _timeline(itinerary, candidate)
        idx = next(i for i, s in enumerate(timeline) if s.id == candidate.id)
        if idx == 0:
            return self.ok()

        previous = timeline[idx - 1]
        if not _changes_location(previous, candidate):
            return self.ok()
        if has_overnight_gap(previous.end_datetime, candidate.start_datetime):
            return self.ok()
        if _has_bridging_transfer(timeline, previous.end_datetime, candidate.start_datetime):
            return self.ok()

        return self.fail(
            f'Activity "{candidate.name}" is at a different location from previous segment',
            "Add a transfer segment between the two locations",
            [previous.id],
            confidence=0.8,
        )


@register_rule
class GeographicContinuityRule(BaseRule):
    """Suggest a transfer when the next segment is somewhere else."""

    rule_id = "geographic-continuity"
    rule_name = "Geographic Continuity"
    description = "Segments should flow geographically with appropriate transfers"
    severity = Severity.INFO

    def evaluate(self, itinerary, candidate):
        timeline = _timeline(itinerary, candidate)
        idx = next(i for i, s in enumerate(timeline) if s.id == candidate.id)
        if idx == len(timeline) - 1:
            return self.ok()

        following = timeline[idx + 1]
        if isinstance(following, TransferSegment):
            return self.ok()
        if not _changes_location(candidate, following):
            return self.ok()
        if _has_bridging_transfer(timeline, candidate.end_datetime, following.start_datetime):
            return self.ok()

        return self.fail(
            "Location change detected without transfer segment",
            "Consider adding a transfer segment for better tracking",
            [following.id],
            confidence=0.6,
        )
