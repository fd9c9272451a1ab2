"""Shared test fixtures for tourwatch.

Fake renderer, page and frame objects stand in for Playwright so the
cascade, interaction stage and run loop can be exercised without a browser.
"""

import threading
from pathlib import Path

import pytest
import yaml

from tourwatch.config import MonitorConfig, RenderTimeouts
from tourwatch.errors import DeliveryError
from tourwatch.models import SiteConfig
from tourwatch.scraper.base import DocumentSnapshot, MarkerElement

FIXTURES_DIR = Path(__file__).parent / "fixtures"

_ENV_VARS = (
    "TOURWATCH_ENV",
    "TOURWATCH_INTERVAL_SECONDS",
    "TOURWATCH_TRIGGER_DATES",
    "TOURWATCH_COOLDOWN_MINUTES",
    "TOURWATCH_SITES_FILE",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeFrame:
    """A nested frame with a canned snapshot (or a canned access error)."""

    def __init__(self, snapshot=None, name="iframe 1", error=None):
        self.name = name
        self._snapshot = snapshot or DocumentSnapshot()
        self.error = error
        self.settled = []
        self.snapshot_calls = 0

    def settle(self, ms):
        self.settled.append(ms)

    def snapshot(self, query):
        self.snapshot_calls += 1
        if self.error is not None:
            raise self.error
        return self._snapshot


class FakePage:
    """A rendered page that records every call made on it."""

    def __init__(
        self,
        snapshot=None,
        frames=(),
        url="https://example.com/tours/",
        buttons=(),
        snapshot_error=None,
        click_error=None,
        after_click=None,
    ):
        self.url = url
        self._snapshot = snapshot or DocumentSnapshot()
        self._frames = list(frames)
        self.buttons = list(buttons)
        self.snapshot_error = snapshot_error
        self.click_error = click_error
        self.after_click = after_click
        self.snapshot_calls = 0
        self.frame_calls = 0
        self.find_calls = []
        self.clicks = []
        self.waits = []
        self.close_count = 0

    def snapshot(self, query):
        self.snapshot_calls += 1
        if self.snapshot_error is not None:
            raise self.snapshot_error
        return self._snapshot

    def frames(self):
        self.frame_calls += 1
        return list(self._frames)

    def find_by_text(self, selector, text, timeout_ms):
        self.find_calls.append((selector, text, timeout_ms))
        for button in self.buttons:
            if text in button.strip():
                return button
        return None

    def click(self, element):
        if self.click_error is not None:
            raise self.click_error
        self.clicks.append(element)
        if self.after_click is not None:
            self._snapshot = self.after_click

    def wait(self, ms):
        self.waits.append(ms)

    def close(self):
        self.close_count += 1


class FakeRenderer:
    """Maps URLs to pages; an exception value is raised from load()."""

    def __init__(self, pages):
        self.pages = dict(pages)
        self.loads = []

    def load(self, url):
        self.loads.append(url)
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return page


class RecordingGateway:
    """Messaging gateway that keeps sent messages in memory."""

    def __init__(self, configured=True, error=None):
        self._configured = configured
        self.error = error
        self.sent = []

    @property
    def configured(self):
        return self._configured

    def send(self, message):
        if self.error is not None:
            raise self.error
        self.sent.append(message)


class InstantEvent(threading.Event):
    """Stop event whose wait() returns at once, recording the timeout."""

    def __init__(self):
        super().__init__()
        self.waits = []

    def wait(self, timeout=None):
        self.waits.append(timeout)
        return self.is_set()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep the developer's own monitor settings out of the tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def load_yaml():
    """Return a function that loads a YAML fixture file."""

    def _load(name: str) -> dict:
        path = FIXTURES_DIR / name
        with open(path) as f:
            return yaml.safe_load(f)

    return _load


@pytest.fixture
def sites_file():
    """Path to the two-site registry fixture."""
    return FIXTURES_DIR / "sites.yaml"


@pytest.fixture
def marker():
    """Build a MarkerElement; text defaults to the concatenated labels."""

    def _make(status, *labels, in_container=True, text=None):
        return MarkerElement(
            status=status,
            text="".join(labels) if text is None else text,
            child_texts=tuple(labels),
            in_container=in_container,
        )

    return _make


@pytest.fixture
def snapshot():
    """Build a DocumentSnapshot from markers."""

    def _make(*markers, has_container=True, status_values=None):
        if status_values is None:
            status_values = tuple(dict.fromkeys(m.status for m in markers))
        return DocumentSnapshot(
            has_container=has_container,
            markers=tuple(markers),
            status_values=tuple(status_values),
        )

    return _make


@pytest.fixture
def fake_page():
    return FakePage


@pytest.fixture
def fake_frame():
    return FakeFrame


@pytest.fixture
def fake_renderer():
    return FakeRenderer


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def recording_gateway():
    return RecordingGateway


@pytest.fixture
def instant_event():
    return InstantEvent()


@pytest.fixture
def site():
    """A site whose calendar is on the page without interaction."""
    return SiteConfig(
        name="Example Tours",
        url="https://example.com/tours/",
        target_dates=["19", "20", "21"],
    )


@pytest.fixture
def interactive_site():
    """A site whose calendar only appears after clicking "Book now"."""
    return SiteConfig(
        name="Modal Tours",
        url="https://modal.example.com/",
        target_dates=["19", "20"],
        requires_interaction=True,
        interaction_trigger_label="Book now",
    )


@pytest.fixture
def fast_timeouts():
    """Timeouts with every settle delay at zero."""
    return RenderTimeouts(load_settle_ms=0, interaction_settle_ms=0, frame_settle_ms=0)


@pytest.fixture
def make_config(fast_timeouts):
    """Build a MonitorConfig over the given sites."""

    def _make(*sites, **kwargs):
        kwargs.setdefault("timeouts", fast_timeouts)
        return MonitorConfig(sites=tuple(sites), **kwargs)

    return _make


@pytest.fixture
def delivery_error():
    return DeliveryError("HTTP 500: Internal Server Error", status_code=500)
