"""Notification decision, message formatting and delivery.

A site's result triggers a notification only when it contains one of the
configured trigger dates. The message then lists every match, not just the
trigger. Delivery failures are reported as a FAILED outcome and never raised
into the run loop.

Repeat policy: with ``cooldown_minutes=0`` a notification goes out on every
cycle the trigger date is observed. A positive cooldown suppresses repeats
for the same site until it elapses. Cooldown state is in-memory only.
"""

from __future__ import annotations

import datetime
import logging
import time
from typing import Callable, Optional, Protocol, Sequence

from tourwatch.errors import DeliveryError
from tourwatch.models import AvailabilityMatch, DispatchResult, DispatchStatus, SiteConfig

logger = logging.getLogger(__name__)

_MARKDOWN_SPECIAL = ("_", "*", "`", "[")


class MessageGateway(Protocol):
    """Anything that can deliver a text message to a configured recipient."""

    @property
    def configured(self) -> bool: ...

    def send(self, message: str) -> None: ...


def should_notify(matches: Sequence[AvailabilityMatch], trigger_dates: Sequence[str]) -> bool:
    """True if any match is for a trigger date."""
    triggers = set(trigger_dates)
    return any(m.date in triggers for m in matches)


def _escape(text: str) -> str:
    for ch in _MARKDOWN_SPECIAL:
        text = text.replace(ch, f"\\{ch}")
    return text


def format_message(
    site: SiteConfig,
    matches: Sequence[AvailabilityMatch],
    trigger_dates: Sequence[str],
    now: Optional[datetime.datetime] = None,
) -> str:
    """Build the Telegram Markdown message for a site's matches."""
    now = now or datetime.datetime.now().astimezone()
    found = [d for d in trigger_dates if any(m.date == d for m in matches)]
    found_text = ", ".join(found)

    lines = [
        f"🎉 *Date {_escape(found_text)} available!*",
        "",
        f"📍 *Site:* {_escape(site.name)}",
        f"🎯 *FOUND DATE {_escape(found_text)} AVAILABLE!*",
        "",
        "📅 *All Available Dates:*",
    ]
    for m in matches:
        lines.append(f"• Date: {_escape(m.date)} ({m.status.value})")
    lines.extend([
        "",
        f"🔗 [Book Now]({site.url})",
        "",
        f"⏰ {now.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}",
    ])
    return "\n".join(lines)


class NotificationDispatcher:
    """Decide, format and send notifications for site results."""

    def __init__(
        self,
        gateway: MessageGateway,
        trigger_dates: Sequence[str] = ("20",),
        cooldown_minutes: float = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.gateway = gateway
        self.trigger_dates = tuple(trigger_dates)
        self.cooldown_minutes = cooldown_minutes
        self._clock = clock
        self._last_sent: dict[str, float] = {}

    def _in_cooldown(self, site_name: str) -> bool:
        if self.cooldown_minutes <= 0:
            return False
        last = self._last_sent.get(site_name)
        if last is None:
            return False
        return (self._clock() - last) < self.cooldown_minutes * 60

    def dispatch(
        self,
        site: SiteConfig,
        matches: Sequence[AvailabilityMatch],
        now: Optional[datetime.datetime] = None,
    ) -> DispatchResult:
        """Send a notification for one site's result if it warrants one."""
        if not should_notify(matches, self.trigger_dates):
            logger.info(
                "%s: no trigger date (%s) found, skipping notification",
                site.name,
                ", ".join(self.trigger_dates),
            )
            return DispatchResult(status=DispatchStatus.NOT_TRIGGERED)

        if not self.gateway.configured:
            logger.info("%s: messaging not configured, notification suppressed", site.name)
            return DispatchResult(status=DispatchStatus.SUPPRESSED)

        if self._in_cooldown(site.name):
            logger.info(
                "%s: notified within the last %g minute(s), skipping",
                site.name,
                self.cooldown_minutes,
            )
            return DispatchResult(status=DispatchStatus.COOLDOWN)

        message = format_message(site, matches, self.trigger_dates, now=now)
        logger.info("%s: trigger date found, sending notification", site.name)
        try:
            self.gateway.send(message)
        except DeliveryError as exc:
            logger.error("%s: failed to send notification: %s", site.name, exc)
            return DispatchResult(status=DispatchStatus.FAILED, message=message, error=str(exc))

        self._last_sent[site.name] = self._clock()
        return DispatchResult(status=DispatchStatus.SENT, message=message)
