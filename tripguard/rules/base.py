"""Rule engine base: protocol, registry, and decorators."""

from __future__ import annotations

from typing import Optional, Protocol

from tripguard.models import Itinerary, RuleOutcome, Segment, SegmentType, Severity


class Rule(Protocol):
    """Protocol for segment validation rules.

    Custom rules registered on a RuleEngine must provide the same attributes.
    ``segment_types`` of None means the rule applies to every segment type.
    """

    rule_id: str
    rule_name: str
    description: str
    severity: Severity
    segment_types: Optional[tuple[SegmentType, ...]]
    enabled: bool

    def evaluate(self, itinerary: Itinerary, candidate: Segment) -> RuleOutcome: ...


# Global rule registry, kept in evaluation order
_RULE_REGISTRY: list[type] = []


def register_rule(cls: type) -> type:
    """Decorator to register a rule class."""
    _RULE_REGISTRY.append(cls)
    return cls


def get_registered_rules() -> list[type]:
    """Return all registered rule classes."""
    return list(_RULE_REGISTRY)


class BaseRule:
    """Default attributes and outcome helpers for the built-in rules."""

    rule_id: str = ""
    rule_name: str = ""
    description: str = ""
    severity: Severity = Severity.ERROR
    segment_types: Optional[tuple[SegmentType, ...]] = None
    enabled: bool = True

    def ok(self) -> RuleOutcome:
        return RuleOutcome(
            rule_id=self.rule_id,
            rule_name=self.rule_name,
            passed=True,
            severity=self.severity,
        )

    def fail(
        self,
        message: str,
        suggestion: str = "",
        related_segment_ids: Optional[list[str]] = None,
        confidence: Optional[float] = None,
    ) -> RuleOutcome:
        return RuleOutcome(
            rule_id=self.rule_id,
            rule_name=self.rule_name,
            passed=False,
            severity=self.severity,
            message=message,
            suggestion=suggestion,
            related_segment_ids=related_segment_ids or [],
            confidence=confidence,
        )
