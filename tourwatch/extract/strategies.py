"""The three extraction strategies, in priority order.

Direct document and frame scan look only inside the calendar container and
require exact label equality. The whole-document fallback ignores the
container and accepts substring containment.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from tourwatch.errors import AccessError
from tourwatch.extract.base import MatchPolicy, match_contains, match_exact
from tourwatch.models import AvailabilityMatch

if TYPE_CHECKING:
    from tourwatch.extract.base import ExtractionStrategy
    from tourwatch.scraper.base import MarkerQuery, RenderedPage

logger = logging.getLogger(__name__)

_DEFAULT_FRAME_SETTLE_MS = 2000


class DirectDocumentStrategy:
    """Calendar container in the top-level document."""

    strategy_id = "direct_document"
    strategy_name = "Direct document"
    match_policy = MatchPolicy.EXACT

    def attempt(
        self, page: "RenderedPage", target_dates: Sequence[str], query: "MarkerQuery"
    ) -> list[AvailabilityMatch]:
        snapshot = page.snapshot(query)
        if not snapshot.has_container:
            logger.debug("No %s in main document", query.container_selector)
            return []
        logger.info("Found %s in main document", query.container_selector)
        return match_exact(snapshot.container_markers, target_dates)


class FrameScanStrategy:
    """Calendar container inside a nested frame; first non-empty frame wins."""

    strategy_id = "frame_scan"
    strategy_name = "Frame scan"
    match_policy = MatchPolicy.EXACT

    def __init__(self, frame_settle_ms: int = _DEFAULT_FRAME_SETTLE_MS) -> None:
        self.frame_settle_ms = frame_settle_ms

    def attempt(
        self, page: "RenderedPage", target_dates: Sequence[str], query: "MarkerQuery"
    ) -> list[AvailabilityMatch]:
        frames = page.frames()
        logger.info("Found %d iframe(s)", len(frames))
        for frame in frames:
            try:
                frame.settle(self.frame_settle_ms)
                snapshot = frame.snapshot(query)
            except AccessError as exc:
                logger.info("Skipping %s: %s", frame.name, exc)
                continue
            if not snapshot.has_container:
                continue
            logger.info("Found %s in %s", query.container_selector, frame.name)
            matches = match_exact(snapshot.container_markers, target_dates)
            if matches:
                return matches
        return []


class WholeDocumentStrategy:
    """Any status marker anywhere in the top-level document."""

    strategy_id = "whole_document"
    strategy_name = "Whole document"
    match_policy = MatchPolicy.CONTAINS

    def attempt(
        self, page: "RenderedPage", target_dates: Sequence[str], query: "MarkerQuery"
    ) -> list[AvailabilityMatch]:
        snapshot = page.snapshot(query)
        logger.info(
            "Searching entire page: %d element(s) with a watched status marker",
            len(snapshot.markers),
        )
        return match_contains(snapshot.markers, target_dates)


def default_strategies(frame_settle_ms: int = _DEFAULT_FRAME_SETTLE_MS) -> list["ExtractionStrategy"]:
    """Strategies in the order the cascade tries them."""
    return [
        DirectDocumentStrategy(),
        FrameScanStrategy(frame_settle_ms=frame_settle_ms),
        WholeDocumentStrategy(),
    ]
