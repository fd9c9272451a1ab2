"""Run loop: poll every site in registry order, then exit or sleep and repeat.

Per site the poll moves through rendering, interacting (only when the site
needs it), extracting and notifying. An error at any stage marks that site
FAILED and the loop moves on to the next site. The rendered page is closed
before notification and before the next site starts, so at most one browser
is open at a time.
"""

from __future__ import annotations

import datetime
import logging
import signal
import threading
import time
from typing import TYPE_CHECKING, Callable, Optional

from tourwatch.config import MonitorConfig, RunMode
from tourwatch.errors import MonitorError
from tourwatch.extract.cascade import ExtractionCascade
from tourwatch.interaction import open_booking_modal
from tourwatch.models import (
    CycleReport,
    DispatchResult,
    DispatchStatus,
    SiteConfig,
    SiteRunResult,
    SiteState,
)
from tourwatch.notify.dispatcher import NotificationDispatcher
from tourwatch.notify.telegram import TelegramGateway
from tourwatch.scraper.base import MarkerQuery

if TYPE_CHECKING:
    from tourwatch.scraper.base import PageRenderer, RenderedPage

logger = logging.getLogger(__name__)

_CONTEXT_LOG_CHARS = 100

# Called after each site, and after each cycle
SiteCallback = Callable[[SiteRunResult], None]
CycleCallback = Callable[[CycleReport], None]


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Monitor:
    """Sequential availability monitor over a fixed site registry.

    Usage::

        config = MonitorConfig.from_env()
        monitor = Monitor(config)
        install_signal_handlers(monitor)
        monitor.run()
    """

    def __init__(
        self,
        config: MonitorConfig,
        renderer: Optional["PageRenderer"] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        cascade: Optional[ExtractionCascade] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        self.config = config
        if renderer is None:
            from tourwatch.scraper.playwright_renderer import PlaywrightRenderer

            renderer = PlaywrightRenderer.from_config(config)
        self.renderer = renderer
        self.dispatcher = dispatcher or NotificationDispatcher(
            TelegramGateway(config.telegram),
            trigger_dates=config.trigger_dates,
            cooldown_minutes=config.cooldown_minutes,
        )
        self.cascade = cascade or ExtractionCascade.from_timeouts(config.timeouts)
        self._stop = stop_event or threading.Event()
        self._in_cycle = False
        self.cycle_count = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def stop(self) -> None:
        """Stop before the next site or cycle. In-flight work is not aborted."""
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def run(
        self,
        on_cycle: Optional[CycleCallback] = None,
        on_site: Optional[SiteCallback] = None,
    ) -> int:
        """Run cycles until single-pass completion or stop().

        Returns:
            Number of cycles completed.
        """
        completed = 0
        while not self.stopping:
            report = self.run_cycle(on_site=on_site)
            completed += 1
            if on_cycle:
                self._callback(on_cycle, report)

            if self.config.mode == RunMode.SINGLE_PASS or self.stopping:
                break

            logger.info("Waiting %d seconds before next cycle...", self.config.interval_seconds)
            if self._stop.wait(self.config.interval_seconds):
                break

        logger.info("Monitoring stopped after %d cycle(s)", completed)
        return completed

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def run_cycle(self, on_site: Optional[SiteCallback] = None) -> CycleReport:
        """Poll every site once, in registry order."""
        if self._in_cycle:
            raise RuntimeError("A poll cycle is already running")
        self._in_cycle = True
        try:
            self.cycle_count += 1
            report = CycleReport(cycle=self.cycle_count, started_at=_now())
            logger.info("=== Poll cycle #%d ===", self.cycle_count)

            for site in self.config.sites:
                if self.stopping:
                    report.interrupted = True
                    report.results.append(SiteRunResult(site=site, state=SiteState.SKIPPED))
                    continue
                result = self.poll_site(site)
                report.results.append(result)
                if on_site:
                    self._callback(on_site, result)

            report.finished_at = _now()
            logger.info(
                "Cycle #%d done: %d match(es), %d failed site(s), %d notification(s) sent",
                report.cycle,
                report.total_matches,
                len(report.failed_sites),
                report.notifications_sent,
            )
            return report
        finally:
            self._in_cycle = False

    # ------------------------------------------------------------------
    # Single site
    # ------------------------------------------------------------------

    def poll_site(self, site: SiteConfig, notify: bool = True) -> SiteRunResult:
        """Render, interact, extract and (optionally) notify for one site.

        Never raises for site-level failures; they are recorded on the
        returned result with the stage they happened in.
        """
        result = SiteRunResult(site=site)
        started = time.monotonic()
        logger.info("=== Checking %s ===", site.name)

        try:
            self._extract(site, result)
        except MonitorError as exc:
            self._mark_failed(result, exc.stage, exc)
        except Exception as exc:
            logger.debug("Unexpected error polling %s", site.name, exc_info=True)
            self._mark_failed(result, result.state.value, exc)
        else:
            self._log_matches(result)
            if notify:
                result.state = SiteState.NOTIFYING
                result.dispatch = self._notify(site, result)
            result.state = SiteState.DONE

        result.duration_seconds = time.monotonic() - started
        return result

    def _extract(self, site: SiteConfig, result: SiteRunResult) -> None:
        timeouts = self.config.timeouts

        result.state = SiteState.RENDERING
        logger.info("Loading %s...", site.name)
        page = self.renderer.load(site.url)
        try:
            logger.info("Waiting for content to load...")
            page.wait(timeouts.load_settle_ms)

            if site.requires_interaction:
                result.state = SiteState.INTERACTING
                open_booking_modal(page, site, timeouts)

            result.state = SiteState.EXTRACTING
            outcome = self.cascade.run(page, site.target_dates, MarkerQuery.for_site(site))
        finally:
            self._release(page, site)

        result.matches = outcome.matches
        result.strategy = outcome.strategy
        result.diagnostics = outcome.diagnostics

    @staticmethod
    def _callback(callback: Callable, payload) -> None:
        # Reporting must not end the loop
        try:
            callback(payload)
        except Exception:
            logger.exception("Result callback %r failed", callback)

    def _release(self, page: "RenderedPage", site: SiteConfig) -> None:
        try:
            page.close()
        except Exception as exc:
            logger.warning("Error closing page for %s: %s", site.name, exc)

    def _notify(self, site: SiteConfig, result: SiteRunResult) -> DispatchResult:
        try:
            return self.dispatcher.dispatch(site, result.matches)
        except Exception as exc:
            logger.error("%s: notification error: %s", site.name, exc)
            return DispatchResult(status=DispatchStatus.FAILED, error=str(exc))

    @staticmethod
    def _mark_failed(result: SiteRunResult, stage: str, exc: Exception) -> None:
        logger.error("Error on %s during %s: %s", result.site.name, stage, exc)
        result.matches = []
        result.error = str(exc)
        result.error_stage = stage
        result.state = SiteState.FAILED

    @staticmethod
    def _log_matches(result: SiteRunResult) -> None:
        site = result.site
        if not result.matches:
            logger.info(
                "No matching dates found on %s (%s)", site.name, ", ".join(site.target_dates)
            )
            return
        logger.info("FOUND MATCHING DATES ON %s", site.name.upper())
        for m in result.matches:
            logger.info(
                "  Date: %s | Status: %s | Context: %s...",
                m.date,
                m.status.value,
                m.context[:_CONTEXT_LOG_CHARS],
            )


def install_signal_handlers(monitor: Monitor) -> None:
    """Stop the monitor on SIGINT/SIGTERM; a second signal aborts at once."""

    def _handler(signum, frame):
        if monitor.stopping:
            raise KeyboardInterrupt
        logger.info("Received %s, stopping gracefully...", signal.Signals(signum).name)
        monitor.stop()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)
