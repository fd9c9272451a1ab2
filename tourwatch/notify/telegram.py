"""Telegram Bot API messaging gateway.

Requires TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID (resolved into
``TelegramSettings`` at startup). An unconfigured gateway is a valid state:
``configured`` is False and callers skip delivery.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from tourwatch.config import TelegramSettings
from tourwatch.errors import DeliveryError

logger = logging.getLogger(__name__)

_TELEGRAM_API_BASE = "https://api.telegram.org"
_ERROR_BODY_MAX_CHARS = 200


class TelegramGateway:
    """Send Markdown text messages to one chat."""

    def __init__(self, settings: Optional[TelegramSettings] = None) -> None:
        self.settings = settings or TelegramSettings()

    @property
    def configured(self) -> bool:
        return self.settings.configured

    def _redact(self, text: str) -> str:
        # requests errors echo the URL, which embeds the bot token
        token = self.settings.bot_token
        return text.replace(token, "***") if token else text

    def send(self, message: str) -> None:
        """Send one message.

        Raises:
            DeliveryError: If unconfigured, unreachable, or the API answers
                with a non-200 status.
        """
        if not self.configured:
            raise DeliveryError("Telegram is not configured")

        url = f"{_TELEGRAM_API_BASE}/bot{self.settings.bot_token}/sendMessage"
        payload = {
            "chat_id": self.settings.chat_id,
            "text": message,
            "parse_mode": "Markdown",
            "disable_web_page_preview": False,
        }

        try:
            resp = requests.post(url, json=payload, timeout=self.settings.timeout_seconds)
        except requests.Timeout:
            raise DeliveryError("Telegram request timed out")
        except requests.RequestException as exc:
            raise DeliveryError(f"Telegram request error: {self._redact(str(exc))}")

        if resp.status_code != 200:
            body = self._redact(resp.text or "")[:_ERROR_BODY_MAX_CHARS]
            raise DeliveryError(f"HTTP {resp.status_code}: {body}", status_code=resp.status_code)

        logger.info("Telegram notification sent")
