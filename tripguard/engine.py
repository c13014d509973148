"""Rule engine: runs the registered segment rules against a candidate mutation."""

import logging
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field

from tripguard.models import (
    Itinerary,
    RuleOutcome,
    Segment,
    SegmentType,
    Severity,
    ValidationResult,
)
from tripguard.rules.base import Rule, get_registered_rules

logger = logging.getLogger(__name__)


class RuleEngineConfig(BaseModel):
    """Which rules run.

    Error-severity rules always run unless listed in ``disabled_rules``.
    """

    enable_warnings: bool = True
    enable_info: bool = False
    disabled_rules: list[str] = Field(default_factory=list)


def load_engine_config(path: Union[str, Path]) -> RuleEngineConfig:
    """Load a RuleEngineConfig from a YAML file.

    The file may hold the settings at the top level or under a ``rules`` key.
    """
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if "rules" in raw and isinstance(raw["rules"], dict):
        raw = raw["rules"]
    return RuleEngineConfig(**raw)


class RuleEngine:
    """Evaluates rules in registration order; the first error wins."""

    def __init__(self, config: Optional[RuleEngineConfig] = None) -> None:
        self.config = config or RuleEngineConfig()
        self._rules: dict[str, Rule] = {}
        self._discover_rules()
        for rule_cls in get_registered_rules():
            self.register_rule(rule_cls())

    def _discover_rules(self) -> None:
        """Import all rule modules so @register_rule decorators fire."""
        import tripguard.rules.temporal  # noqa: F401
        import tripguard.rules.overlap  # noqa: F401
        import tripguard.rules.transfers  # noqa: F401

    # --- Registry ---

    def register_rule(self, rule: Rule) -> None:
        """Add a rule, or replace the rule with the same id in place."""
        self._rules[rule.rule_id] = rule

    def unregister_rule(self, rule_id: str) -> None:
        self._rules.pop(rule_id, None)

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    @property
    def rules(self) -> list[Rule]:
        return list(self._rules.values())

    def rules_for_type(self, segment_type: SegmentType) -> list[Rule]:
        return [
            r for r in self._rules.values()
            if r.segment_types is None or segment_type in r.segment_types
        ]

    def update_config(self, **changes) -> None:
        """Merge new settings into the current config."""
        self.config = self.config.model_copy(update=changes)

    # --- Evaluation ---

    def is_active(self, rule: Rule) -> bool:
        """Whether ``rule`` runs under the current config, ignoring segment type."""
        if not rule.enabled:
            return False
        if rule.rule_id in self.config.disabled_rules:
            return False
        if rule.severity == Severity.WARNING and not self.config.enable_warnings:
            return False
        if rule.severity == Severity.INFO and not self.config.enable_info:
            return False
        return True

    def _rule_applies(self, rule: Rule, candidate: Segment) -> bool:
        if not self.is_active(rule):
            return False
        if rule.segment_types is not None and candidate.segment_type not in rule.segment_types:
            return False
        return True

    def _evaluate(self, itinerary: Itinerary, candidate: Segment, operation: str) -> ValidationResult:
        result = ValidationResult(segment_id=candidate.id, operation=operation)

        for rule in self._rules.values():
            if not self._rule_applies(rule, candidate):
                continue

            try:
                outcome = rule.evaluate(itinerary, candidate)
            except Exception as e:
                logger.warning("Rule %s failed on segment %s: %s", rule.rule_id, candidate.id, e)
                outcome = RuleOutcome(
                    passed=False,
                    message=f"Rule execution error: {e}",
                    suggestion="Check rule implementation.",
                )

            if outcome.passed:
                continue

            outcome = outcome.model_copy(
                update={
                    "rule_id": rule.rule_id,
                    "rule_name": rule.rule_name,
                    "severity": rule.severity,
                }
            )
            if rule.severity == Severity.ERROR:
                logger.debug("Segment %s rejected by %s: %s", candidate.id, rule.rule_id, outcome.message)
                result.errors.append(outcome)
                break
            if rule.severity == Severity.WARNING:
                result.warnings.append(outcome)
            else:
                result.info.append(outcome)

        return result

    def validate_add(self, itinerary: Itinerary, candidate: Segment) -> ValidationResult:
        """Validate adding ``candidate`` to ``itinerary``."""
        return self._evaluate(itinerary, candidate, "add")

    def validate_update(
        self, itinerary: Itinerary, segment_id: str, updated: Segment
    ) -> ValidationResult:
        """Validate replacing segment ``segment_id`` with ``updated``.

        The original segment is removed first so nothing is compared
        against its own previous version.
        """
        if updated.id != segment_id:
            updated = updated.model_copy(update={"id": segment_id})
        others = [s for s in itinerary.segments if s.id != segment_id]
        view = itinerary.model_copy(update={"segments": others})
        return self._evaluate(view, updated, "update")

    def validate_all(self, itinerary: Itinerary) -> dict[str, ValidationResult]:
        """Re-check every segment already on an itinerary, keyed by segment id."""
        return {
            seg.id: self.validate_update(itinerary, seg.id, seg)
            for seg in itinerary.segments
        }

    @staticmethod
    def summarize(result: ValidationResult) -> str:
        """One-line human summary of a validation result."""
        parts = []
        if result.errors:
            parts.append(f"{len(result.errors)} error(s)")
        if result.warnings:
            parts.append(f"{len(result.warnings)} warning(s)")
        if result.info:
            parts.append(f"{len(result.info)} info message(s)")
        if not parts:
            return "Validation passed"
        verdict = "passed with warnings" if result.valid else "failed"
        return f"Validation {verdict}: {', '.join(parts)}"
