"""Rich-based output formatter with colored tables and panels."""

from __future__ import annotations

from io import StringIO
from typing import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tourwatch.models import (
    AvailabilityStatus,
    CycleReport,
    DispatchStatus,
    SiteConfig,
    SiteRunResult,
    SiteState,
)

_STATUS_STYLES = {
    AvailabilityStatus.AVAILABLE: "bold green",
    AvailabilityStatus.SELLING_OUT: "yellow",
}

_DISPATCH_STYLES = {
    DispatchStatus.SENT: "bold green",
    DispatchStatus.FAILED: "bold red",
    DispatchStatus.SUPPRESSED: "yellow",
    DispatchStatus.COOLDOWN: "blue",
    DispatchStatus.NOT_TRIGGERED: "dim",
}


def _render(renderable) -> str:
    """Render a Rich object to a string."""
    buf = StringIO()
    console = Console(file=buf, force_terminal=True, width=120)
    console.print(renderable)
    return buf.getvalue()


def _state_text(result: SiteRunResult) -> Text:
    if result.state == SiteState.FAILED:
        return Text("FAILED", style="bold red")
    if result.state == SiteState.SKIPPED:
        return Text("SKIPPED", style="dim")
    if result.found:
        return Text("FOUND", style="bold green")
    return Text("NONE", style="dim")


def _dispatch_text(result: SiteRunResult) -> Text:
    if result.dispatch is None:
        return Text("-", style="dim")
    status = result.dispatch.status
    return Text(status.value, style=_DISPATCH_STYLES.get(status, ""))


class RichFormatter:
    """Format monitor results using Rich tables and panels."""

    def format_site_result(self, result: SiteRunResult) -> str:
        """Summary panel plus a match table (or diagnostics when empty)."""
        parts: list[str] = []
        site = result.site

        summary = Text()
        summary.append("Status:   ")
        summary.append_text(_state_text(result))
        summary.append(f"\nURL:      {site.url}")
        summary.append(f"\nTargets:  {', '.join(site.target_dates)}")
        if result.strategy:
            summary.append(f"\nStrategy: {result.strategy}")
        if result.error:
            summary.append(f"\nError:    [{result.error_stage}] {result.error}", style="red")
        if result.dispatch:
            summary.append("\nNotify:   ")
            summary.append_text(_dispatch_text(result))
        border = "red" if result.failed else ("green" if result.found else "cyan")
        parts.append(_render(Panel(summary, title=Text(site.name), border_style=border)))

        if result.matches:
            table = Table(title="Matches", show_lines=False)
            table.add_column("Date", style="cyan", justify="right")
            table.add_column("Status", min_width=10)
            table.add_column("Context", style="dim")
            for m in result.matches:
                table.add_row(
                    Text(m.date),
                    Text(m.status.value, style=_STATUS_STYLES.get(m.status, "")),
                    Text(m.context[:80]),
                )
            parts.append(_render(table))
        elif result.diagnostics:
            d = result.diagnostics
            lines = [
                f"Calendar container: {'yes' if d.has_container else 'no'}",
                f"Available markers:  {d.available_count}",
                f"SellingOut markers: {d.selling_out_count}",
                f"Status values seen: {', '.join(d.status_values) or '-'}",
            ]
            # Status values are page text, not markup
            panel = Panel(Text("\n".join(lines)), title="Diagnostics", border_style="yellow")
            parts.append(_render(panel))

        return "\n".join(parts)

    def format_cycle(self, report: CycleReport) -> str:
        table = Table(title=f"Poll cycle #{report.cycle}", show_lines=True)
        table.add_column("Site", style="cyan")
        table.add_column("Status")
        table.add_column("Dates")
        table.add_column("Notify")
        table.add_column("Time", justify="right", style="dim")

        for r in report.results:
            table.add_row(
                Text(r.site.name),
                _state_text(r),
                Text(", ".join(r.dates) or "-"),
                _dispatch_text(r),
                f"{r.duration_seconds:.1f}s",
            )

        footer = (
            f"Matches: {report.total_matches}  "
            f"Failed: {len(report.failed_sites)}  "
            f"Sent: {report.notifications_sent}"
        )
        if report.interrupted:
            footer += "  (interrupted)"
        return _render(table) + footer

    def format_sites(self, sites: Sequence[SiteConfig]) -> str:
        table = Table(title="Monitored sites", show_lines=True)
        table.add_column("#", style="dim", justify="right")
        table.add_column("Name", style="cyan")
        table.add_column("URL")
        table.add_column("Target dates")
        table.add_column("Trigger button")

        for i, s in enumerate(sites, 1):
            table.add_row(
                str(i),
                Text(s.name),
                Text(s.url),
                Text(", ".join(s.target_dates)),
                Text(s.interaction_trigger_label if s.requires_interaction else "-"),
            )
        return _render(table)
