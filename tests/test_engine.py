"""Tests for the RuleEngine: ordering, config, registry, and error handling."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest
from hypothesis import HealthCheck, given, settings
import hypothesis.strategies as st

from tripguard.engine import RuleEngine, RuleEngineConfig, load_engine_config
from tripguard.models import Itinerary, RuleOutcome, SegmentType, Severity
from tripguard.rules import BaseRule

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class _ExplodingRule(BaseRule):
    rule_id = "exploding"
    rule_name = "Exploding"
    description = "Always raises"

    def evaluate(self, itinerary, candidate):
        raise RuntimeError("boom")


class _NoMeetingsOnWeekends(BaseRule):
    rule_id = "no-weekend-meetings"
    rule_name = "No Weekend Meetings"
    description = "Meetings must be on weekdays"
    severity = Severity.WARNING
    segment_types = (SegmentType.MEETING,)

    def evaluate(self, itinerary, candidate):
        if candidate.start_datetime.weekday() >= 5:
            return self.fail("Meeting scheduled on a weekend")
        return self.ok()


class TestConfig:
    def test_defaults(self):
        config = RuleEngineConfig()
        assert config.enable_warnings is True
        assert config.enable_info is False
        assert config.disabled_rules == []

    def test_load_from_yaml(self):
        config = load_engine_config(FIXTURES_DIR / "engine_config.yaml")
        assert config.enable_info is True
        assert config.disabled_rules == ["reasonable-duration"]

    def test_load_top_level_yaml(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("enable_warnings: false\n")
        assert load_engine_config(path).enable_warnings is False

    def test_load_empty_yaml(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("")
        assert load_engine_config(path) == RuleEngineConfig()

    def test_update_config(self):
        engine = RuleEngine()
        engine.update_config(enable_info=True)
        assert engine.config.enable_info is True
        assert engine.config.enable_warnings is True


class TestRegistry:
    def test_default_rules(self):
        engine = RuleEngine()
        assert len(engine.rules) == 8
        assert engine.get_rule("no-flight-overlap") is not None

    def test_register_custom_rule(self):
        engine = RuleEngine()
        engine.register_rule(_NoMeetingsOnWeekends())
        assert engine.rules[-1].rule_id == "no-weekend-meetings"

    def test_register_replaces_same_id(self):
        engine = RuleEngine()
        replacement = _ExplodingRule()
        replacement.rule_id = "chronological-order"
        engine.register_rule(replacement)
        assert len(engine.rules) == 8
        assert engine.get_rule("chronological-order") is replacement

    def test_unregister(self):
        engine = RuleEngine()
        engine.unregister_rule("geographic-continuity")
        engine.unregister_rule("not-a-rule")
        assert engine.get_rule("geographic-continuity") is None
        assert len(engine.rules) == 7

    def test_rules_for_type(self):
        engine = RuleEngine()
        hotel_ids = {r.rule_id for r in engine.rules_for_type(SegmentType.HOTEL)}
        assert "no-hotel-overlap" in hotel_ids
        assert "chronological-order" in hotel_ids
        assert "no-flight-overlap" not in hotel_ids

    def test_is_active(self):
        engine = RuleEngine()
        assert engine.is_active(engine.get_rule("chronological-order"))
        assert not engine.is_active(engine.get_rule("geographic-continuity"))
        assert not engine.is_active(engine.get_rule("hotel-activity-overlap-allowed"))


class TestValidateAdd:
    def test_clean_segment(self, tokyo_itinerary, make_activity):
        seg = make_activity("Sumo practice", "2025-01-13T08:00", "2025-01-13T10:00", city="Tokyo")
        result = RuleEngine().validate_add(tokyo_itinerary, seg)
        assert result.valid
        assert result.operation == "add"
        assert result.segment_id == seg.id

    def test_first_error_short_circuits(self, make_activity):
        # Backwards and outside trip dates: only the first error is reported
        itin = Itinerary(title="t", start_date="2025-01-08", end_date="2025-01-20")
        seg = make_activity(start="2025-02-11T14:00", end="2025-02-11T13:00")
        result = RuleEngine().validate_add(itin, seg)
        assert not result.valid
        assert [e.rule_id for e in result.errors] == ["chronological-order"]

    def test_warnings_accumulate(self, make_flight):
        seg = make_flight(start="2025-01-10T10:00", end="2025-01-10T10:05")
        result = RuleEngine().validate_add(Itinerary(title="t"), seg)
        assert result.valid
        assert [w.rule_id for w in result.warnings] == ["reasonable-duration"]
        assert result.warnings[0].severity == Severity.WARNING

    def test_warnings_disabled(self, make_flight):
        seg = make_flight(start="2025-01-10T10:00", end="2025-01-10T10:05")
        engine = RuleEngine(RuleEngineConfig(enable_warnings=False))
        assert engine.validate_add(Itinerary(title="t"), seg).warnings == []

    def test_info_enabled(self, make_activity):
        candidate = make_activity("Louvre", "2025-01-11T10:00", "2025-01-11T12:00", city="Paris")
        later = make_activity("Cathedral", "2025-01-11T15:00", "2025-01-11T17:00", city="Chartres")
        itin = Itinerary(title="t", segments=[later])
        assert RuleEngine().validate_add(itin, candidate).info == []
        engine = RuleEngine(RuleEngineConfig(enable_info=True))
        info = engine.validate_add(itin, candidate).info
        assert [o.rule_id for o in info] == ["geographic-continuity"]

    def test_disabled_rule_skipped(self, make_activity):
        seg = make_activity(start="2025-01-11T14:00", end="2025-01-11T13:00")
        engine = RuleEngine(RuleEngineConfig(disabled_rules=["chronological-order"]))
        assert engine.validate_add(Itinerary(title="t"), seg).valid

    def test_rule_exception_becomes_failure(self, make_activity):
        engine = RuleEngine()
        engine.register_rule(_ExplodingRule())
        result = engine.validate_add(Itinerary(title="t"), make_activity())
        assert not result.valid
        error = result.first_error
        assert error.rule_id == "exploding"
        assert error.message == "Rule execution error: boom"

    def test_custom_rule_scoped_to_type(self, make_activity):
        engine = RuleEngine()
        engine.register_rule(_NoMeetingsOnWeekends())
        # Saturday activity is unaffected by the meeting-only rule
        seg = make_activity(start="2025-01-11T10:00", end="2025-01-11T12:00")
        assert engine.validate_add(Itinerary(title="t"), seg).warnings == []


class TestValidateUpdate:
    def test_not_compared_with_previous_version(self, make_flight):
        flight = make_flight("UA1", "2025-01-10T10:00", "2025-01-10T14:00")
        itin = Itinerary(title="t", segments=[flight])
        moved = flight.model_copy(update={"end_datetime": flight.end_datetime.replace(hour=15)})
        result = RuleEngine().validate_update(itin, flight.id, moved)
        assert result.valid
        assert result.operation == "update"

    def test_id_forced_to_target(self, make_flight):
        flight = make_flight("UA1", "2025-01-10T10:00", "2025-01-10T14:00")
        itin = Itinerary(title="t", segments=[flight])
        replacement = make_flight("UA1", "2025-01-10T11:00", "2025-01-10T15:00")
        result = RuleEngine().validate_update(itin, flight.id, replacement)
        assert result.valid
        assert result.segment_id == flight.id


class TestValidateAll:
    def test_clean_itinerary(self, tokyo_itinerary):
        results = RuleEngine().validate_all(tokyo_itinerary)
        assert set(results) == {s.id for s in tokyo_itinerary.segments}
        assert all(r.valid for r in results.values())

    def test_conflicting_itinerary(self, barcelona_itinerary):
        results = RuleEngine().validate_all(barcelona_itinerary)
        assert not results["seg-flight-ib3011"].valid
        assert results["seg-flight-ib3011"].first_error.rule_id == "no-flight-overlap"
        assert results["seg-hotel-arts"].valid


class TestSummarize:
    def test_passed(self):
        from tripguard.models import ValidationResult

        assert RuleEngine.summarize(ValidationResult()) == "Validation passed"

    def test_with_errors_and_warnings(self):
        from tripguard.models import ValidationResult

        result = ValidationResult(
            errors=[RuleOutcome(passed=False)],
            warnings=[RuleOutcome(passed=False), RuleOutcome(passed=False)],
        )
        assert RuleEngine.summarize(result) == "Validation failed: 1 error(s), 2 warning(s)"

    def test_warnings_only(self):
        from tripguard.models import ValidationResult

        result = ValidationResult(warnings=[RuleOutcome(passed=False)])
        assert RuleEngine.summarize(result) == "Validation passed with warnings: 1 warning(s)"


# ---------------------------------------------------------------------------
# Disabling a rule that did not fire never changes the outcome
# ---------------------------------------------------------------------------

_hours = st.integers(min_value=0, max_value=23)
_days = st.integers(min_value=8, max_value=22)
_lengths = st.integers(min_value=-120, max_value=36 * 60)


@settings(max_examples=60, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(day=_days, hour=_hours, length=_lengths)
def test_disabling_untriggered_rule_keeps_outcome(tokyo_itinerary, make_activity, day, hour, length):
    start = datetime(2025, 1, day, hour)
    seg = make_activity("Walk", start, start + timedelta(minutes=length), city="Tokyo")

    engine = RuleEngine(RuleEngineConfig(enable_info=True))
    baseline = engine.validate_add(tokyo_itinerary, seg)
    fired = {o.rule_id for o in [*baseline.errors, *baseline.warnings, *baseline.info]}

    for rule in engine.rules:
        if rule.rule_id in fired:
            continue
        config = RuleEngineConfig(enable_info=True, disabled_rules=[rule.rule_id])
        result = RuleEngine(config).validate_add(tokyo_itinerary, seg)
        assert result.valid == baseline.valid
        assert [o.rule_id for o in result.errors] == [o.rule_id for o in baseline.errors]
        assert [o.rule_id for o in result.warnings] == [o.rule_id for o in baseline.warnings]


@pytest.mark.parametrize("rule_id", ["no-hotel-overlap", "no-flight-overlap", "geographic-continuity"])
def test_disabling_rule_on_clean_add(tokyo_itinerary, make_activity, rule_id):
    seg = make_activity("Sumo practice", "2025-01-13T08:00", "2025-01-13T10:00", city="Tokyo")
    config = RuleEngineConfig(disabled_rules=[rule_id])
    assert RuleEngine(config).validate_add(tokyo_itinerary, seg) == RuleEngine().validate_add(
        tokyo_itinerary, seg
    )
