"""Plain text output formatter -- no ANSI escapes."""

from __future__ import annotations

from tripguard.models import (
    Itinerary,
    MutationResult,
    RuleOutcome,
    SegmentTimeIssue,
    ValidationResult,
)
from tripguard.rules.base import Rule
from tripguard.timecheck import summarize_time_issues


def _header(title: str) -> str:
    """Create a plain text section header."""
    return f"\n{'=' * 60}\n  {title}\n{'=' * 60}\n"


def _subheader(title: str) -> str:
    """Create a plain text sub-header."""
    return f"\n--- {title} ---\n"


def _outcome_lines(outcomes: list[RuleOutcome], label: str) -> list[str]:
    lines = []
    for o in outcomes:
        lines.append(f"  {label:<8} [{o.rule_id}] {o.message}")
        if o.suggestion:
            lines.append(f"  {'':<8} Fix: {o.suggestion}")
    return lines


class PlainFormatter:
    """Format tripguard results as plain text without ANSI escapes."""

    def format_mutation(self, result: MutationResult) -> str:
        """Format a mutation result."""
        lines: list[str] = []
        status = "ACCEPTED" if result.accepted else "REJECTED"

        lines.append(_header("Segment Mutation"))
        lines.append(f"  Status:     {status}")
        if result.segment_id:
            lines.append(f"  Segment:    {result.segment_id}")
        if result.itinerary is not None:
            lines.append(f"  Itinerary:  {result.itinerary.id} (version {result.itinerary.version})")

        if result.error is not None:
            err = result.error
            lines.append(_subheader(f"Error ({err.kind.value})"))
            lines.append(f"  Code:       {err.code.value}")
            if err.rule_id:
                lines.append(f"  Rule:       {err.rule_id}")
            lines.append(f"  Message:    {err.message}")
            if err.suggestion:
                lines.append(f"  Fix:        {err.suggestion}")
            if err.existing_segment_id:
                lines.append(f"  Existing:   {err.existing_segment_id}")

        if result.warnings or result.info:
            lines.append(_subheader("Notes"))
            lines.extend(_outcome_lines(result.warnings, "WARNING"))
            lines.extend(_outcome_lines(result.info, "INFO"))

        check = result.time_check
        if check is not None and not check.is_valid:
            lines.append(_subheader("Time Check"))
            lines.append(f"  {check.severity.value.upper():<8} {check.issue}")
            if check.suggested_time:
                lines.append(f"  {'':<8} Suggested time: {check.suggested_time}")

        return "\n".join(lines)

    def format_audit(self, itinerary: Itinerary, results: dict[str, ValidationResult]) -> str:
        """Format an itinerary audit."""
        lines: list[str] = []
        errors = sum(r.error_count for r in results.values())
        warnings = sum(r.warning_count for r in results.values())
        status = "PASS" if errors == 0 else "FAIL"

        lines.append(_header("Itinerary Audit"))
        lines.append(f"  Status:     {status}")
        lines.append(f"  Itinerary:  {itinerary.title}")
        lines.append(f"  Segments:   {len(results)}")
        lines.append(f"  Errors:     {errors}")
        lines.append(f"  Warnings:   {warnings}")

        lines.append(_subheader("Segments"))
        lines.append(f"  {'Start':<17} {'Type':<9} {'Segment':<30} Result")
        lines.append(f"  {'-' * 17} {'-' * 9} {'-' * 30} {'-' * 20}")
        for seg in itinerary.sorted_segments():
            result = results.get(seg.id)
            if result is None:
                continue
            if not result.valid:
                verdict = "FAIL"
            elif result.warnings:
                verdict = "WARN"
            else:
                verdict = "OK"
            lines.append(
                f"  {seg.start_datetime:%Y-%m-%d %H:%M} {seg.type:<9} {seg.label[:30]:<30} {verdict}"
            )
            lines.extend(
                "    " + line for line in _outcome_lines(result.errors, "ERROR")
            )
            lines.extend(
                "    " + line for line in _outcome_lines(result.warnings, "WARNING")
            )
            lines.extend("    " + line for line in _outcome_lines(result.info, "INFO"))

        return "\n".join(lines)

    def format_itinerary(self, itinerary: Itinerary) -> str:
        """Format an itinerary as a plain text table."""
        lines: list[str] = []
        lines.append(_header(itinerary.title))
        lines.append(f"  Id:         {itinerary.id}")
        lines.append(f"  Version:    {itinerary.version}")
        if itinerary.has_trip_dates:
            lines.append(f"  Dates:      {itinerary.start_date} to {itinerary.end_date}")
        if itinerary.travelers:
            names = ", ".join(t.full_name for t in itinerary.travelers)
            lines.append(f"  Travelers:  {names}")

        lines.append(_subheader(f"Segments ({len(itinerary.segments)})"))
        lines.append(f"  {'Start':<17} {'End':<17} {'Type':<9} Segment")
        lines.append(f"  {'-' * 17} {'-' * 17} {'-' * 9} {'-' * 30}")
        for seg in itinerary.sorted_segments():
            lines.append(
                f"  {seg.start_datetime:%Y-%m-%d %H:%M} {seg.end_datetime:%Y-%m-%d %H:%M} "
                f"{seg.type:<9} {seg.label}"
            )
        return "\n".join(lines)

    def format_time_issues(self, issues: list[SegmentTimeIssue]) -> str:
        """Format time-of-day issues."""
        lines: list[str] = []
        summary = summarize_time_issues(issues)
        lines.append(_header("Time-of-Day Check"))
        lines.append(f"  Issues:     {summary['total']}")
        if not issues:
            lines.append("  All segment times look plausible.")
            return "\n".join(lines)

        lines.append(_subheader("Issues"))
        for item in issues:
            seg, check = item.segment, item.check
            lines.append(
                f"  {check.severity.value.upper():<8} {seg.start_datetime:%Y-%m-%d %H:%M} "
                f"{seg.label}: {check.issue}"
            )
            if check.details:
                lines.append(f"  {'':<8} {check.details}")
            if check.suggested_time:
                lines.append(f"  {'':<8} Suggested time: {check.suggested_time}")
        return "\n".join(lines)

    def format_rules(self, rules: list[Rule], active_ids: set[str]) -> str:
        """Format the rule catalogue."""
        lines: list[str] = []
        lines.append(_header("Rules"))
        lines.append(f"  {'Rule':<32} {'Severity':<9} {'Active':<7} Description")
        lines.append(f"  {'-' * 32} {'-' * 9} {'-' * 7} {'-' * 40}")
        for r in rules:
            active = "yes" if r.rule_id in active_ids else "no"
            lines.append(f"  {r.rule_id:<32} {r.severity.value:<9} {active:<7} {r.description}")
        return "\n".join(lines)
