"""Tests for time-of-day plausibility checks."""

from datetime import date, datetime

import pytest

from tripguard.models import CustomSegment, MeetingSegment, Severity, TimeIssueCategory
from tripguard.timecheck import (
    TIME_KEYWORDS,
    apply_time_fix,
    format_hour,
    is_in_window,
    summarize_time_issues,
    validate_itinerary_times,
    validate_segment_time,
)


def _at(hour, minute=0):
    return f"2025-01-11T{hour:02d}:{minute:02d}"


class TestHelpers:
    def test_plain_window(self):
        assert is_in_window(12, 11, 15)
        assert is_in_window(15, 11, 15)
        assert not is_in_window(16, 11, 15)

    def test_wrapping_window(self):
        assert is_in_window(23, 22, 3)
        assert is_in_window(2, 22, 3)
        assert not is_in_window(12, 22, 3)

    def test_format_hour(self):
        assert format_hour(0) == "12:00 AM"
        assert format_hour(9, 5) == "9:05 AM"
        assert format_hour(12, 30) == "12:30 PM"
        assert format_hour(19) == "7:00 PM"

    def test_keyword_table(self):
        assert set(TIME_KEYWORDS) >= {"dinner", "breakfast", "late night", "sunrise"}


class TestKeywords:
    def test_dinner_in_the_morning(self, make_activity):
        seg = make_activity("Dinner at Le Cinq", _at(10), _at(11, 30), category="dining")
        check = validate_segment_time(seg)
        assert not check.is_valid
        assert check.severity == Severity.WARNING
        assert check.category == TimeIssueCategory.SEMANTIC_MISMATCH
        assert check.suggested_time == "19:00"
        assert "10:00 AM" in check.details

    def test_dinner_in_the_evening(self, make_activity):
        seg = make_activity("Dinner at Le Cinq", _at(19), _at(21), category="dining")
        assert validate_segment_time(seg).is_valid

    def test_longest_keyword_wins(self, make_activity):
        # "late night" (22-3) rather than "night" (20-3)
        seg = make_activity("Late night jazz", _at(21), _at(23))
        check = validate_segment_time(seg)
        assert not check.is_valid
        assert '"late night"' in check.issue

    def test_keyword_match_skips_type_checks(self, make_activity):
        # 5 AM would be too early for an attraction, but it is a sunrise hike
        seg = make_activity("Sunrise hike", _at(5), _at(8))
        assert validate_segment_time(seg).is_valid

    def test_meeting_title_keywords(self):
        seg = MeetingSegment(title="Breakfast briefing", start_datetime=_at(15), end_datetime=_at(16))
        check = validate_segment_time(seg)
        assert not check.is_valid
        assert check.suggested_time == "08:00"

    def test_case_insensitive(self, make_activity):
        seg = make_activity("BRUNCH CRUISE", _at(20), _at(22))
        assert not validate_segment_time(seg).is_valid


class TestDining:
    @pytest.mark.parametrize(
        "hour, valid, severity",
        [
            (6, False, Severity.WARNING),
            (8, True, None),
            (12, True, None),
            (16, False, Severity.INFO),
            (19, True, None),
            (23, False, Severity.WARNING),
            (3, False, Severity.ERROR),
        ],
    )
    def test_dining_hours(self, make_activity, hour, valid, severity):
        seg = make_activity("Le Comptoir", _at(hour), _at(hour, 45), category="restaurant")
        check = validate_segment_time(seg)
        assert check.is_valid is valid
        assert check.severity == severity


class TestActivities:
    @pytest.mark.parametrize(
        "hour, valid, category",
        [
            (10, True, None),
            (7, False, TimeIssueCategory.BUSINESS_HOURS),
            (5, False, TimeIssueCategory.TOO_EARLY),
            (2, False, TimeIssueCategory.TOO_EARLY),
            (22, False, TimeIssueCategory.TOO_LATE),
        ],
    )
    def test_attraction_hours(self, make_activity, hour, valid, category):
        seg = make_activity("Museum visit", _at(hour), _at(hour, 50))
        check = validate_segment_time(seg)
        assert check.is_valid is valid
        assert check.category == category


class TestOtherTypes:
    def test_red_eye_flight(self, make_flight):
        check = validate_segment_time(make_flight(start=_at(2), end=_at(6)))
        assert not check.is_valid
        assert check.severity == Severity.INFO

    def test_daytime_flight(self, make_flight):
        assert validate_segment_time(make_flight(start=_at(10), end=_at(13))).is_valid

    def test_early_hotel_check_in(self, make_hotel):
        hotel = make_hotel()
        early = hotel.model_copy(update={"start_datetime": datetime(2025, 1, 10, 9)})
        check = validate_segment_time(early)
        assert check.severity == Severity.WARNING
        assert check.suggested_time == "15:00"

    def test_standard_hotel_check_in(self, make_hotel):
        assert validate_segment_time(make_hotel()).is_valid

    def test_overnight_transfer(self, make_transfer):
        check = validate_segment_time(make_transfer(start=_at(3), end=_at(4)))
        assert check.severity == Severity.INFO

    def test_custom_without_keywords(self):
        seg = CustomSegment(title="Laundry", start_datetime=_at(3), end_datetime=_at(4))
        assert validate_segment_time(seg).is_valid


class TestItineraryTimes:
    def test_clean_itinerary(self, tokyo_itinerary):
        assert validate_itinerary_times(tokyo_itinerary.segments) == []

    def test_issues_collected(self, barcelona_itinerary):
        issues = validate_itinerary_times(barcelona_itinerary.segments)
        assert [i.segment.id for i in issues] == ["seg-activity-sagrada"]

    def test_summary(self, make_activity, make_flight):
        segments = [
            make_activity("Dinner", _at(10), _at(11)),
            make_activity("Museum", _at(2), _at(3)),
            make_flight(start=_at(2), end=_at(5)),
        ]
        summary = summarize_time_issues(validate_itinerary_times(segments))
        assert summary["total"] == 3
        assert summary["by_severity"] == {"error": 1, "warning": 1, "info": 1}
        assert summary["by_category"]["semantic_mismatch"] == 1
        assert summary["by_category"]["too_early"] == 1


class TestApplyTimeFix:
    def test_keeps_duration(self, make_activity):
        seg = make_activity("Dinner at Le Cinq", _at(10), _at(11, 30), category="dining")
        fixed = apply_time_fix(seg, "19:00")
        assert fixed.start_datetime == datetime(2025, 1, 11, 19, 0)
        assert fixed.end_datetime == datetime(2025, 1, 11, 20, 30)
        assert fixed.id == seg.id
        assert validate_segment_time(fixed).is_valid

    def test_original_untouched(self, make_activity):
        seg = make_activity("Dinner", _at(10), _at(11))
        apply_time_fix(seg, "19:00")
        assert seg.start_datetime.hour == 10

    def test_hotel_check_dates_follow(self, make_hotel):
        hotel = make_hotel("Park Hyatt Tokyo", "2025-01-10", "2025-01-11")
        fixed = apply_time_fix(hotel, "02:00")
        assert fixed.end_datetime == datetime(2025, 1, 10, 22, 0)
        assert fixed.check_out_date == date(2025, 1, 10)
        assert fixed.check_in_date == fixed.start_datetime.date()
        assert fixed.check_out_date == fixed.end_datetime.date()
