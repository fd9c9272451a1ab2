"""JSON output formatter -- valid JSON suitable for piping to jq."""

from __future__ import annotations

import json
from typing import Sequence

from tourwatch.models import CycleReport, SiteConfig, SiteRunResult


def _site_result_data(result: SiteRunResult) -> dict:
    return {
        "site": result.site.name,
        "url": result.site.url,
        "state": result.state.value,
        "strategy": result.strategy,
        "matches": [m.model_dump(mode="json") for m in result.matches],
        "error": result.error,
        "error_stage": result.error_stage,
        "diagnostics": result.diagnostics.model_dump(mode="json") if result.diagnostics else None,
        "notification": result.dispatch.status.value if result.dispatch else None,
        "duration_seconds": round(result.duration_seconds, 2),
    }


class JsonFormatter:
    """Format monitor results as pretty-printed JSON."""

    def format_site_result(self, result: SiteRunResult) -> str:
        data = {"type": "site_result", **_site_result_data(result)}
        return json.dumps(data, indent=2)

    def format_cycle(self, report: CycleReport) -> str:
        data = {
            "type": "poll_cycle",
            "cycle": report.cycle,
            "started_at": report.started_at.isoformat(),
            "finished_at": report.finished_at.isoformat() if report.finished_at else None,
            "interrupted": report.interrupted,
            "summary": {
                "total_matches": report.total_matches,
                "failed_sites": report.failed_sites,
                "notifications_sent": report.notifications_sent,
            },
            "results": [_site_result_data(r) for r in report.results],
        }
        return json.dumps(data, indent=2)

    def format_sites(self, sites: Sequence[SiteConfig]) -> str:
        data = {
            "type": "site_registry",
            "sites": [s.model_dump(mode="json") for s in sites],
        }
        return json.dumps(data, indent=2)
