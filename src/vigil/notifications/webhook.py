"""Webhook notification handler (Slack-compatible incoming webhooks)."""

from __future__ import annotations

import os
from typing import Optional

import requests

from vigil.logging_config import get_logger

from .base import NotificationEvent, NotificationHandler, NotificationLevel

logger = get_logger(__name__)


class WebhookNotifier(NotificationHandler):
    """Post notifications as JSON to a webhook URL."""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        username: str = "vigil",
        timeout_s: float = 10.0,
    ):
        """Initialize webhook notifier.

        Args:
            webhook_url: Webhook URL (from env: VIGIL_WEBHOOK_URL)
            username: Sender name shown in the receiving channel
            timeout_s: Request timeout
        """
        self.webhook_url = webhook_url or os.getenv("VIGIL_WEBHOOK_URL")
        self.username = username
        self.timeout_s = timeout_s

    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    def send(self, event: NotificationEvent) -> bool:
        if not self.is_configured():
            logger.warning("Webhook notifier not configured")
            return False

        try:
            response = requests.post(
                self.webhook_url,
                json=self._create_payload(event),
                timeout=self.timeout_s,
            )
        except requests.Timeout:
            logger.error("Webhook notification timeout")
            return False
        except requests.RequestException as e:
            logger.error(f"Failed to send webhook notification: {e}")
            return False

        if 200 <= response.status_code < 300:
            logger.debug(f"Webhook notification sent: {event.title}")
            return True
        logger.error(f"Failed to send webhook notification: {response.status_code}")
        return False

    def _create_payload(self, event: NotificationEvent) -> dict:
        colors = {
            NotificationLevel.INFO: "#0099ff",
            NotificationLevel.SUCCESS: "#36a64f",
            NotificationLevel.WARNING: "#ff9900",
            NotificationLevel.ERROR: "#ff0000",
            NotificationLevel.CRITICAL: "#8B0000",
        }

        fields = []
        if event.environment:
            fields.append({"title": "Environment", "value": event.environment, "short": True})
        if event.escalation_level is not None:
            fields.append({"title": "Escalation", "value": str(event.escalation_level), "short": True})
        for key, value in event.metrics.items():
            fields.append({"title": key, "value": str(value), "short": True})

        return {
            "username": self.username,
            "text": event.title,
            "attachments": [
                {
                    "color": colors.get(event.level, "#0099ff"),
                    "text": event.message,
                    "fields": fields,
                    "footer": event.event_type.value,
                    "ts": int(event.timestamp.timestamp()),
                }
            ],
        }
