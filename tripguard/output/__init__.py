"""Output formatters for tripguard.

Provides a Formatter protocol and three implementations:
- RichFormatter: colored Rich tables and panels
- PlainFormatter: plain text without ANSI escapes
- JsonFormatter: valid JSON for piping to jq
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from tripguard.models import Itinerary, MutationResult, SegmentTimeIssue, ValidationResult
    from tripguard.rules.base import Rule


class Formatter(Protocol):
    """Protocol for formatting tripguard results."""

    def format_mutation(self, result: MutationResult) -> str:
        """Format the outcome of a segment mutation."""
        ...

    def format_audit(self, itinerary: Itinerary, results: dict[str, ValidationResult]) -> str:
        """Format per-segment validation results for a whole itinerary."""
        ...

    def format_itinerary(self, itinerary: Itinerary) -> str:
        """Format an itinerary and its segments."""
        ...

    def format_time_issues(self, issues: list[SegmentTimeIssue]) -> str:
        """Format time-of-day issues."""
        ...

    def format_rules(self, rules: list[Rule], active_ids: set[str]) -> str:
        """Format the rule catalogue."""
        ...


def get_formatter(name: str = "rich") -> Formatter:
    """Get a formatter by name.

    Args:
        name: One of "rich", "plain", "json".

    Returns:
        A Formatter instance.

    Raises:
        ValueError: If the name is not recognized.
    """
    if name == "rich":
        from tripguard.output.rich_formatter import RichFormatter

        return RichFormatter()
    elif name == "plain":
        from tripguard.output.plain_formatter import PlainFormatter

        return PlainFormatter()
    elif name == "json":
        from tripguard.output.json_formatter import JsonFormatter

        return JsonFormatter()
    else:
        raise ValueError(f"Unknown formatter: {name!r}. Use 'rich', 'plain', or 'json'.")
