"""Playwright (sync API) implementation of the page renderer.

Each ``load()`` starts its own Playwright driver and Chromium instance, so
every poll of every site gets a fresh profile: no cookies, storage or DOM
state survive between polls. ``PlaywrightPage.close()`` tears all of it
down and is safe to call more than once.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from tourwatch.config import DEFAULT_USER_AGENT, MonitorConfig, RenderTimeouts
from tourwatch.errors import AccessError, ExtractionError, InteractionError, RenderError
from tourwatch.scraper.base import DocumentSnapshot, MarkerQuery, snapshot_from_payload

logger = logging.getLogger(__name__)

# Container-friendly Chromium flags
_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]

# Evaluated in a document; returns plain data only
_SNAPSHOT_JS = """
({container, attribute, statuses}) => {
    const root = document.querySelector(container);
    const selector = statuses.map(s => `[${attribute}="${s}"]`).join(', ');
    const markers = Array.from(document.querySelectorAll(selector)).map(el => ({
        status: el.getAttribute(attribute),
        text: el.textContent || '',
        child_texts: Array.from(el.querySelectorAll('div')).map(c => (c.textContent || '').trim()),
        in_container: root !== null && root.contains(el),
    }));
    const values = Array.from(new Set(
        Array.from(document.querySelectorAll(`[${attribute}]`)).map(el => el.getAttribute(attribute))
    ));
    return {has_container: root !== null, markers: markers, status_values: values};
}
"""


class PlaywrightFrame:
    """An ``<iframe>`` of a PlaywrightPage, resolved lazily."""

    def __init__(self, page, handle, index: int) -> None:
        self._page = page
        self._handle = handle
        self.name = f"iframe {index + 1}"

    def settle(self, ms: int) -> None:
        self._page.wait_for_timeout(ms)

    def snapshot(self, query: MarkerQuery) -> DocumentSnapshot:
        try:
            frame = self._handle.content_frame()
        except Exception as exc:
            raise AccessError(f"Could not access {self.name}: {exc}") from exc
        if frame is None:
            raise AccessError(f"{self.name} has no content frame")
        try:
            payload = frame.evaluate(_SNAPSHOT_JS, query.as_args())
        except Exception as exc:
            raise AccessError(f"Could not evaluate {self.name}: {exc}") from exc
        return snapshot_from_payload(payload)


class PlaywrightPage:
    """A loaded page plus the browser and driver that own it."""

    def __init__(self, playwright, browser, page, url: str) -> None:
        self._playwright = playwright
        self._browser = browser
        self._page = page
        self.url = url

    def __enter__(self) -> "PlaywrightPage":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._browser is None and self._playwright is None

    def snapshot(self, query: MarkerQuery) -> DocumentSnapshot:
        try:
            payload = self._page.evaluate(_SNAPSHOT_JS, query.as_args())
        except Exception as exc:
            raise ExtractionError(f"Snapshot failed on {self.url}: {exc}") from exc
        return snapshot_from_payload(payload)

    def frames(self) -> list[PlaywrightFrame]:
        handles = self._page.query_selector_all("iframe")
        return [PlaywrightFrame(self._page, h, i) for i, h in enumerate(handles)]

    def find_by_text(self, selector: str, text: str, timeout_ms: int) -> Optional[Any]:
        try:
            self._page.wait_for_selector(selector, timeout=timeout_ms)
        except Exception as exc:
            raise InteractionError(
                f"No {selector!r} element appeared within {timeout_ms}ms: {exc}"
            ) from exc
        for element in self._page.query_selector_all(selector):
            content = (element.text_content() or "").strip()
            if text in content:
                return element
        return None

    def click(self, element: Any) -> None:
        try:
            element.click()
        except Exception as exc:
            raise InteractionError(f"Click failed: {exc}") from exc

    def wait(self, ms: int) -> None:
        self._page.wait_for_timeout(ms)

    def close(self) -> None:
        """Close browser and stop Playwright."""
        if self._browser is not None:
            try:
                self._browser.close()
            except Exception as exc:
                logger.warning("Error closing browser: %s", exc)
            self._browser = None
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception as exc:
                logger.warning("Error stopping Playwright: %s", exc)
            self._playwright = None
        self._page = None


class PlaywrightRenderer:
    """Launches headless Chromium per load with a normalized fingerprint.

    Usage::

        renderer = PlaywrightRenderer.from_config(config)
        page = renderer.load("https://example.com/tours/")
        try:
            snapshot = page.snapshot(MarkerQuery())
        finally:
            page.close()
    """

    def __init__(
        self,
        timeouts: Optional[RenderTimeouts] = None,
        headless: bool = True,
        viewport: tuple[int, int] = (1920, 1080),
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.timeouts = timeouts or RenderTimeouts()
        self.headless = headless
        self.viewport = viewport
        self.user_agent = user_agent

    @classmethod
    def from_config(cls, config: MonitorConfig) -> "PlaywrightRenderer":
        return cls(
            timeouts=config.timeouts,
            headless=config.headless,
            viewport=(config.viewport_width, config.viewport_height),
            user_agent=config.user_agent,
        )

    def load(self, url: str) -> PlaywrightPage:
        try:
            from playwright.sync_api import sync_playwright
        except ImportError:
            raise RenderError(
                "Playwright is not installed. Install with: "
                "pip install playwright && playwright install chromium"
            )

        playwright = browser = None
        try:
            playwright = sync_playwright().start()
            browser = playwright.chromium.launch(headless=self.headless, args=_LAUNCH_ARGS)
            width, height = self.viewport
            context = browser.new_context(
                viewport={"width": width, "height": height},
                user_agent=self.user_agent,
            )
            page = context.new_page()
            logger.debug("Navigating to %s", url)
            page.goto(url, wait_until="networkidle", timeout=self.timeouts.navigation_ms)
        except Exception as exc:
            PlaywrightPage(playwright, browser, None, url).close()
            raise RenderError(f"Failed to load {url}: {exc}") from exc

        return PlaywrightPage(playwright, browser, page, url)
