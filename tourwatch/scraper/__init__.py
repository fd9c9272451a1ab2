"""Page rendering for tourwatch.

``base`` defines the renderer protocols and the plain-data snapshots the
extraction cascade works on; ``playwright_renderer`` implements them with
headless Chromium.
"""

from tourwatch.scraper.base import (
    DocumentSnapshot,
    MarkerElement,
    MarkerQuery,
    PageFrame,
    PageRenderer,
    RenderedPage,
    snapshot_from_payload,
)

__all__ = [
    "DocumentSnapshot",
    "MarkerElement",
    "MarkerQuery",
    "PageFrame",
    "PageRenderer",
    "RenderedPage",
    "snapshot_from_payload",
]
