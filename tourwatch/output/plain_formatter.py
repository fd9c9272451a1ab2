"""Plain text output formatter -- no ANSI escapes."""

from __future__ import annotations

from typing import Sequence

from tourwatch.models import CycleReport, SiteConfig, SiteRunResult, SiteState


def _header(title: str) -> str:
    """Create a plain text section header."""
    return f"\n{'=' * 60}\n  {title}\n{'=' * 60}\n"


def _status_word(result: SiteRunResult) -> str:
    if result.state == SiteState.FAILED:
        return "FAILED"
    if result.state == SiteState.SKIPPED:
        return "SKIPPED"
    return "FOUND" if result.found else "NONE"


class PlainFormatter:
    """Format monitor results as plain text."""

    def format_site_result(self, result: SiteRunResult) -> str:
        lines: list[str] = []
        site = result.site
        lines.append(_header(site.name))
        lines.append(f"  URL:       {site.url}")
        lines.append(f"  Targets:   {', '.join(site.target_dates)}")
        lines.append(f"  Status:    {_status_word(result)}")
        if result.strategy:
            lines.append(f"  Strategy:  {result.strategy}")
        if result.error:
            lines.append(f"  Error:     [{result.error_stage}] {result.error}")
        if result.dispatch:
            lines.append(f"  Notify:    {result.dispatch.status.value}")
            if result.dispatch.error:
                lines.append(f"             {result.dispatch.error}")

        if result.matches:
            lines.append("")
            lines.append(f"  {'Date':<8} {'Status':<12} Context")
            lines.append(f"  {'-' * 8} {'-' * 12} {'-' * 40}")
            for m in result.matches:
                lines.append(f"  {m.date:<8} {m.status.value:<12} {m.context[:60]}")
        elif result.diagnostics:
            d = result.diagnostics
            lines.append("")
            lines.append(f"  Container: {'yes' if d.has_container else 'no'}")
            lines.append(f"  Markers:   {d.available_count} Available, {d.selling_out_count} SellingOut")
            if d.status_values:
                lines.append(f"  Seen:      {', '.join(d.status_values)}")

        return "\n".join(lines)

    def format_cycle(self, report: CycleReport) -> str:
        lines: list[str] = [_header(f"Poll cycle #{report.cycle}")]
        lines.append(f"  {'Site':<28} {'Status':<8} {'Dates':<20} Notify")
        lines.append(f"  {'-' * 28} {'-' * 8} {'-' * 20} {'-' * 12}")
        for r in report.results:
            dates = ", ".join(r.dates) or "-"
            notify = r.dispatch.status.value if r.dispatch else "-"
            lines.append(f"  {r.site.name:<28} {_status_word(r):<8} {dates:<20} {notify}")
        lines.append("")
        lines.append(
            f"  Matches: {report.total_matches}  Failed: {len(report.failed_sites)}  "
            f"Sent: {report.notifications_sent}"
        )
        if report.interrupted:
            lines.append("  Cycle interrupted; remaining sites skipped.")
        return "\n".join(lines)

    def format_sites(self, sites: Sequence[SiteConfig]) -> str:
        lines: list[str] = [_header("Monitored sites")]
        for i, s in enumerate(sites, 1):
            lines.append(f"  {i}. {s.name}")
            lines.append(f"     URL:     {s.url}")
            lines.append(f"     Dates:   {', '.join(s.target_dates)}")
            if s.requires_interaction:
                lines.append(f"     Opens:   {s.interaction_trigger_label!r} button first")
        return "\n".join(lines)
