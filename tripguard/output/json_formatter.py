"""JSON output formatter -- valid JSON suitable for piping to jq."""

from __future__ import annotations

import json

from tripguard.models import Itinerary, MutationResult, SegmentTimeIssue, ValidationResult
from tripguard.rules.base import Rule
from tripguard.timecheck import summarize_time_issues


class JsonFormatter:
    """Format tripguard results as pretty-printed JSON."""

    def format_mutation(self, result: MutationResult) -> str:
        """Format a mutation result as JSON."""
        data = {
            "type": "mutation_result",
            "summary": {
                "accepted": result.accepted,
                "segment_id": result.segment_id,
                "version": result.itinerary.version if result.itinerary else None,
                "warning_count": len(result.warnings),
                "info_count": len(result.info),
            },
            "error": result.error.model_dump(mode="json") if result.error else None,
            "warnings": [w.model_dump(mode="json") for w in result.warnings],
            "info": [i.model_dump(mode="json") for i in result.info],
            "time_check": result.time_check.model_dump(mode="json") if result.time_check else None,
        }
        return json.dumps(data, indent=2)

    def format_audit(self, itinerary: Itinerary, results: dict[str, ValidationResult]) -> str:
        """Format an itinerary audit as JSON."""
        data = {
            "type": "itinerary_audit",
            "summary": {
                "itinerary_id": itinerary.id,
                "segment_count": len(results),
                "valid": all(r.valid for r in results.values()),
                "error_count": sum(r.error_count for r in results.values()),
                "warning_count": sum(r.warning_count for r in results.values()),
            },
            "results": {sid: r.model_dump(mode="json") for sid, r in results.items()},
        }
        return json.dumps(data, indent=2)

    def format_itinerary(self, itinerary: Itinerary) -> str:
        """Format an itinerary as JSON."""
        data = {
            "type": "itinerary",
            **itinerary.model_dump(mode="json"),
        }
        return json.dumps(data, indent=2)

    def format_time_issues(self, issues: list[SegmentTimeIssue]) -> str:
        """Format time-of-day issues as JSON."""
        data = {
            "type": "time_issues",
            "summary": summarize_time_issues(issues),
            "issues": [
                {
                    "segment_id": item.segment.id,
                    "segment": item.segment.label,
                    "start": item.segment.start_datetime.isoformat(),
                    **item.check.model_dump(mode="json"),
                }
                for item in issues
            ],
        }
        return json.dumps(data, indent=2)

    def format_rules(self, rules: list[Rule], active_ids: set[str]) -> str:
        """Format the rule catalogue as JSON."""
        data = {
            "type": "rules",
            "rules": [
                {
                    "rule_id": r.rule_id,
                    "rule_name": r.rule_name,
                    "description": r.description,
                    "severity": r.severity.value,
                    "segment_types": (
                        [t.value for t in r.segment_types] if r.segment_types is not None else None
                    ),
                    "active": r.rule_id in active_ids,
                }
                for r in rules
            ],
        }
        return json.dumps(data, indent=2)
