"""Output formatters for tourwatch.

Provides a Formatter protocol and three implementations:
- RichFormatter: colored Rich tables and panels
- PlainFormatter: plain text without ANSI escapes
- JsonFormatter: valid JSON for piping to jq
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence

if TYPE_CHECKING:
    from tourwatch.models import CycleReport, SiteConfig, SiteRunResult


class Formatter(Protocol):
    """Protocol for formatting monitor results."""

    def format_site_result(self, result: SiteRunResult) -> str:
        """Format one site's poll result."""
        ...

    def format_cycle(self, report: CycleReport) -> str:
        """Format a full poll cycle."""
        ...

    def format_sites(self, sites: Sequence[SiteConfig]) -> str:
        """Format the site registry."""
        ...


def get_formatter(name: str = "rich") -> Formatter:
    """Get a formatter by name.

    Args:
        name: One of "rich", "plain", "json".

    Raises:
        ValueError: If the name is not recognized.
    """
    if name == "rich":
        from tourwatch.output.rich_formatter import RichFormatter

        return RichFormatter()
    elif name == "plain":
        from tourwatch.output.plain_formatter import PlainFormatter

        return PlainFormatter()
    elif name == "json":
        from tourwatch.output.json_formatter import JsonFormatter

        return JsonFormatter()
    else:
        raise ValueError(f"Unknown formatter: {name!r}. Use 'rich', 'plain', or 'json'.")
