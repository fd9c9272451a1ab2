"""Extraction cascade orchestrator.

Tries each strategy in order and stops at the first that returns matches.
A strategy that raises is logged and treated as empty, so the cascade always
completes. When nothing matched, a diagnostic summary of the page is logged
for the operator; it never changes the returned matches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Sequence

from tourwatch.extract.strategies import default_strategies
from tourwatch.models import AvailabilityMatch, AvailabilityStatus, PageDiagnostics
from tourwatch.scraper.base import DocumentSnapshot, MarkerQuery

if TYPE_CHECKING:
    from tourwatch.config import RenderTimeouts
    from tourwatch.extract.base import ExtractionStrategy
    from tourwatch.scraper.base import RenderedPage

logger = logging.getLogger(__name__)

_DIAGNOSTIC_SAMPLE_SIZE = 10


@dataclass
class CascadeResult:
    """Matches plus which strategy produced them."""

    matches: list[AvailabilityMatch] = field(default_factory=list)
    strategy: Optional[str] = None
    diagnostics: Optional[PageDiagnostics] = None
    errors: list[str] = field(default_factory=list)


def build_diagnostics(snapshot: DocumentSnapshot) -> PageDiagnostics:
    """Summarize page structure for debugging an empty result."""
    return PageDiagnostics(
        has_container=snapshot.has_container,
        selling_out_count=snapshot.count(AvailabilityStatus.SELLING_OUT.value),
        available_count=snapshot.count(AvailabilityStatus.AVAILABLE.value),
        status_values=list(snapshot.status_values[:_DIAGNOSTIC_SAMPLE_SIZE]),
    )


class ExtractionCascade:
    """Run extraction strategies in priority order."""

    def __init__(self, strategies: Optional[Sequence["ExtractionStrategy"]] = None) -> None:
        self.strategies = list(strategies) if strategies is not None else default_strategies()

    @classmethod
    def from_timeouts(cls, timeouts: "RenderTimeouts") -> "ExtractionCascade":
        return cls(default_strategies(frame_settle_ms=timeouts.frame_settle_ms))

    def run(
        self,
        page: "RenderedPage",
        target_dates: Sequence[str],
        query: Optional[MarkerQuery] = None,
    ) -> CascadeResult:
        """Extract matches for target_dates from a rendered page."""
        query = query or MarkerQuery()
        result = CascadeResult()

        for strategy in self.strategies:
            try:
                matches = strategy.attempt(page, target_dates, query)
            except Exception as exc:
                logger.warning(
                    "Strategy %s failed: %s", strategy.strategy_id, exc
                )
                result.errors.append(f"{strategy.strategy_id}: {exc}")
                continue

            if matches:
                logger.info(
                    "Strategy %s found %d match(es) (%s match)",
                    strategy.strategy_id,
                    len(matches),
                    strategy.match_policy.value,
                )
                result.matches = list(matches)
                result.strategy = strategy.strategy_id
                return result

        result.diagnostics = self.diagnose(page, query)
        return result

    def diagnose(self, page: "RenderedPage", query: MarkerQuery) -> Optional[PageDiagnostics]:
        try:
            snapshot = page.snapshot(query)
        except Exception as exc:
            logger.debug("Diagnostics unavailable: %s", exc)
            return None
        diagnostics = build_diagnostics(snapshot)
        logger.info("Debug info: %s", diagnostics.model_dump())
        return diagnostics
