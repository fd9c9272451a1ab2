"""Extraction strategy base: protocol, match policy, and pure matchers."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional, Protocol, Sequence

from tourwatch.models import AvailabilityMatch, AvailabilityStatus

if TYPE_CHECKING:
    from tourwatch.scraper.base import MarkerElement, MarkerQuery, RenderedPage


class MatchPolicy(str, Enum):
    """How a strategy compares page text with target date labels."""

    EXACT = "exact"  # A descendant's trimmed text equals the label
    CONTAINS = "contains"  # The marker's full text contains the label


class ExtractionStrategy(Protocol):
    """Protocol for availability extraction strategies."""

    strategy_id: str
    strategy_name: str
    match_policy: MatchPolicy

    def attempt(
        self,
        page: "RenderedPage",
        target_dates: Sequence[str],
        query: "MarkerQuery",
    ) -> list[AvailabilityMatch]: ...


def parse_status(value: str) -> Optional[AvailabilityStatus]:
    try:
        return AvailabilityStatus(value)
    except ValueError:
        return None


def match_exact(
    markers: Iterable["MarkerElement"], target_dates: Sequence[str]
) -> list[AvailabilityMatch]:
    """Match descendant texts that equal a target label exactly.

    One match per qualifying descendant, in document order. Concatenated
    multi-date text never equals a single label, so it cannot match.
    """
    targets = set(target_dates)
    matches: list[AvailabilityMatch] = []
    for marker in markers:
        status = parse_status(marker.status)
        if status is None:
            continue
        for text in marker.child_texts:
            label = text.strip()
            if label in targets:
                matches.append(AvailabilityMatch(date=label, status=status, context=marker.text))
    return matches


def match_contains(
    markers: Iterable["MarkerElement"], target_dates: Sequence[str]
) -> list[AvailabilityMatch]:
    """Match markers whose full text contains a target label.

    Markers in document order, labels in configured order. Over-matches by
    construction: "2021" contains "20".
    """
    matches: list[AvailabilityMatch] = []
    for marker in markers:
        status = parse_status(marker.status)
        if status is None or not marker.text:
            continue
        for label in target_dates:
            if label in marker.text:
                matches.append(AvailabilityMatch(date=label, status=status, context=marker.text))
    return matches
