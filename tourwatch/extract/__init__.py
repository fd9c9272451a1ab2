"""Availability extraction -- ordered fallback strategies over page snapshots."""

from tourwatch.extract.base import ExtractionStrategy, MatchPolicy, match_contains, match_exact
from tourwatch.extract.cascade import CascadeResult, ExtractionCascade, build_diagnostics
from tourwatch.extract.strategies import (
    DirectDocumentStrategy,
    FrameScanStrategy,
    WholeDocumentStrategy,
    default_strategies,
)

__all__ = [
    "CascadeResult",
    "DirectDocumentStrategy",
    "ExtractionCascade",
    "ExtractionStrategy",
    "FrameScanStrategy",
    "MatchPolicy",
    "WholeDocumentStrategy",
    "build_diagnostics",
    "default_strategies",
    "match_contains",
    "match_exact",
]
