"""Rich-based output formatter with colored tables, panels, and severity coding."""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tripguard.models import (
    Itinerary,
    MutationResult,
    Severity,
    SegmentTimeIssue,
    ValidationResult,
)
from tripguard.rules.base import Rule
from tripguard.timecheck import summarize_time_issues

# Severity -> Rich style mapping
_SEVERITY_STYLES = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
}


def _render(renderable) -> str:
    """Render a Rich object to a string."""
    buf = StringIO()
    console = Console(file=buf, force_terminal=True, width=120)
    console.print(renderable)
    return buf.getvalue()


def _severity_text(severity: Severity) -> Text:
    return Text(severity.value.upper(), style=_SEVERITY_STYLES.get(severity, ""))


class RichFormatter:
    """Format tripguard results using Rich tables and panels."""

    def format_mutation(self, result: MutationResult) -> str:
        """Format a mutation result as a summary panel plus a notes table."""
        parts: list[str] = []

        summary = Text()
        summary.append("Status: ")
        if result.accepted:
            summary.append("ACCEPTED", style="bold green")
        else:
            summary.append("REJECTED", style="bold red")
        summary.append("\n")
        if result.segment_id:
            summary.append(f"Segment:   {result.segment_id}\n")
        if result.itinerary is not None:
            summary.append(
                f"Itinerary: {result.itinerary.id} (version {result.itinerary.version})\n"
            )

        if result.error is not None:
            err = result.error
            summary.append(f"\n{err.code.value}", style="bold red")
            if err.rule_id:
                summary.append(f" [{err.rule_id}]", style="cyan")
            summary.append(f"\n{err.message}\n")
            if err.suggestion:
                summary.append(f"Fix: {err.suggestion}\n", style="dim")

        border = "green" if result.accepted else "red"
        parts.append(_render(Panel(summary, title="Segment Mutation", border_style=border)))

        if result.warnings or result.info:
            table = Table(title="Notes", show_lines=True)
            table.add_column("Severity", min_width=9)
            table.add_column("Rule", style="cyan")
            table.add_column("Message", min_width=30)
            for o in [*result.warnings, *result.info]:
                message = Text(o.message)
                if o.suggestion:
                    message.append(f"\nFix: {o.suggestion}", style="dim")
                table.add_row(_severity_text(o.severity), o.rule_id, message)
            parts.append(_render(table))

        check = result.time_check
        if check is not None and not check.is_valid:
            text = Text()
            text.append_text(_severity_text(check.severity))
            text.append(f" {check.issue}")
            if check.suggested_time:
                text.append(f"\nSuggested time: {check.suggested_time}", style="dim")
            parts.append(_render(Panel(text, title="Time Check", border_style="yellow")))

        return "\n".join(parts)

    def format_audit(self, itinerary: Itinerary, results: dict[str, ValidationResult]) -> str:
        """Format an itinerary audit with one row per segment."""
        parts: list[str] = []
        errors = sum(r.error_count for r in results.values())
        warnings = sum(r.warning_count for r in results.values())

        summary = Text()
        summary.append("Status: ")
        if errors == 0:
            summary.append("PASS", style="bold green")
        else:
            summary.append("FAIL", style="bold red")
        summary.append(f"\nItinerary: {itinerary.title}\n")
        summary.append(f"Segments:  {len(results)}\n")
        summary.append(f"Errors:    {errors}\n")
        summary.append(f"Warnings:  {warnings}\n")
        parts.append(_render(Panel(summary, title="Itinerary Audit", border_style="cyan")))

        table = Table(title="Segment Results", show_lines=True)
        table.add_column("Start", style="dim")
        table.add_column("Type")
        table.add_column("Segment", style="cyan")
        table.add_column("Result", min_width=6)
        table.add_column("Findings", min_width=40)

        for seg in itinerary.sorted_segments():
            result = results.get(seg.id)
            if result is None:
                continue
            if not result.valid:
                verdict = Text("FAIL", style="bold red")
            elif result.warnings:
                verdict = Text("WARN", style="yellow")
            else:
                verdict = Text("OK", style="green")

            findings = Text()
            for o in [*result.errors, *result.warnings, *result.info]:
                if findings.plain:
                    findings.append("\n")
                findings.append(o.message, style=_SEVERITY_STYLES.get(o.severity, ""))

            table.add_row(
                f"{seg.start_datetime:%Y-%m-%d %H:%M}",
                seg.type,
                seg.label,
                verdict,
                findings,
            )

        parts.append(_render(table))
        return "\n".join(parts)

    def format_itinerary(self, itinerary: Itinerary) -> str:
        """Format an itinerary as a segment table."""
        caption = f"{itinerary.id} (version {itinerary.version})"
        if itinerary.has_trip_dates:
            caption += f" | {itinerary.start_date} to {itinerary.end_date}"

        table = Table(title=itinerary.title, caption=caption, show_lines=True)
        table.add_column("#", style="dim", justify="right")
        table.add_column("Start")
        table.add_column("End")
        table.add_column("Type", style="cyan")
        table.add_column("Segment")
        table.add_column("Status")

        for i, seg in enumerate(itinerary.sorted_segments(), 1):
            table.add_row(
                str(i),
                f"{seg.start_datetime:%Y-%m-%d %H:%M}",
                f"{seg.end_datetime:%Y-%m-%d %H:%M}",
                seg.type,
                seg.label,
                seg.status.value,
            )
        return _render(table)

    def format_time_issues(self, issues: list[SegmentTimeIssue]) -> str:
        """Format time-of-day issues as a table."""
        summary = summarize_time_issues(issues)
        if not issues:
            return _render(
                Panel("All segment times look plausible.", title="Time-of-Day Check", border_style="green")
            )

        table = Table(title=f"Time-of-Day Issues ({summary['total']})", show_lines=True)
        table.add_column("Severity", min_width=9)
        table.add_column("Start", style="dim")
        table.add_column("Segment", style="cyan")
        table.add_column("Issue", min_width=30)
        table.add_column("Suggested", justify="right")

        for item in issues:
            seg, check = item.segment, item.check
            table.add_row(
                _severity_text(check.severity),
                f"{seg.start_datetime:%Y-%m-%d %H:%M}",
                seg.label,
                check.issue,
                check.suggested_time or "",
            )
        return _render(table)

    def format_rules(self, rules: list[Rule], active_ids: set[str]) -> str:
        """Format the rule catalogue as a table."""
        table = Table(title="Rules", show_lines=True)
        table.add_column("Rule", style="cyan")
        table.add_column("Severity")
        table.add_column("Applies To")
        table.add_column("Active")
        table.add_column("Description", min_width=30)

        for r in rules:
            applies = ", ".join(t.value for t in r.segment_types) if r.segment_types else "ALL"
            active = Text("yes", style="green") if r.rule_id in active_ids else Text("no", style="dim")
            table.add_row(r.rule_id, _severity_text(r.severity), applies, active, r.description)
        return _render(table)
