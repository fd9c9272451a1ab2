"""Renderer boundary: page/frame protocols and plain-data DOM snapshots.

The extraction cascade never touches a live DOM. A renderer evaluates one
query per document and hands back a ``DocumentSnapshot``; everything after
that is pure Python.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from tourwatch.models import AvailabilityStatus, SiteConfig


@dataclass(frozen=True)
class MarkerQuery:
    """Where to look for status markers in one document."""

    container_selector: str = "#calendar-widget"
    status_attribute: str = "data-testid"
    statuses: tuple[str, ...] = tuple(s.value for s in AvailabilityStatus)

    @classmethod
    def for_site(cls, site: SiteConfig) -> "MarkerQuery":
        return cls(
            container_selector=site.calendar_selector,
            status_attribute=site.status_attribute,
        )

    def as_args(self) -> dict:
        return {
            "container": self.container_selector,
            "attribute": self.status_attribute,
            "statuses": list(self.statuses),
        }


@dataclass(frozen=True)
class MarkerElement:
    """An element carrying a watched status marker, in document order."""

    status: str
    text: str = ""
    child_texts: tuple[str, ...] = ()  # Trimmed text of each descendant div
    in_container: bool = False


@dataclass(frozen=True)
class DocumentSnapshot:
    """Status-marker view of one document (top-level page or frame)."""

    has_container: bool = False
    markers: tuple[MarkerElement, ...] = ()
    status_values: tuple[str, ...] = ()  # Distinct attribute values seen anywhere

    @property
    def container_markers(self) -> list[MarkerElement]:
        return [m for m in self.markers if m.in_container]

    def count(self, status: str) -> int:
        return sum(1 for m in self.markers if m.status == status)


def snapshot_from_payload(payload: Optional[dict]) -> DocumentSnapshot:
    """Build a snapshot from the JSON-like payload a renderer returns."""
    if not payload:
        return DocumentSnapshot()
    markers = tuple(
        MarkerElement(
            status=str(m.get("status") or ""),
            text=str(m.get("text") or ""),
            child_texts=tuple(str(t) for t in m.get("child_texts") or ()),
            in_container=bool(m.get("in_container")),
        )
        for m in payload.get("markers") or ()
    )
    return DocumentSnapshot(
        has_container=bool(payload.get("has_container")),
        markers=markers,
        status_values=tuple(str(v) for v in payload.get("status_values") or () if v is not None),
    )


class PageFrame(Protocol):
    """A nested frame of a rendered page."""

    name: str

    def settle(self, ms: int) -> None:
        """Give the frame's content time to render."""
        ...

    def snapshot(self, query: MarkerQuery) -> DocumentSnapshot:
        """Snapshot the frame document. Raises AccessError if unreachable."""
        ...


class RenderedPage(Protocol):
    """An exclusively-owned, loaded browsing context for one site poll."""

    url: str

    def snapshot(self, query: MarkerQuery) -> DocumentSnapshot:
        """Snapshot the top-level document."""
        ...

    def frames(self) -> Sequence[PageFrame]:
        """Nested frames in document order."""
        ...

    def find_by_text(self, selector: str, text: str, timeout_ms: int) -> Optional[Any]:
        """First element matching selector whose trimmed text contains text."""
        ...

    def click(self, element: Any) -> None:
        """Click an element from find_by_text. Raises InteractionError."""
        ...

    def wait(self, ms: int) -> None:
        ...

    def close(self) -> None:
        """Release the browsing context. Safe to call more than once."""
        ...


class PageRenderer(Protocol):
    """Loads a URL into a fresh, isolated browsing context."""

    def load(self, url: str) -> RenderedPage:
        """Load and wait for network idle. Raises RenderError."""
        ...

