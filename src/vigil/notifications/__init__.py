"""Operator notifications.

Channels:
- Log (always on)
- Webhook (Slack-compatible JSON payloads)

Usage:
    from vigil.notifications import build_notification_manager

    manager = build_notification_manager(config.notifications)
    manager.notify("Deployment failed", "staging: publish failed")
"""

from __future__ import annotations

from vigil.schema import NotificationsConfig

from .base import (
    EventType,
    LogNotifier,
    NotificationEvent,
    NotificationHandler,
    NotificationLevel,
    NotificationManager,
)
from .webhook import WebhookNotifier


def build_notification_manager(config: NotificationsConfig | None = None) -> NotificationManager:
    """Manager with the log channel plus the webhook when one is configured."""
    config = config or NotificationsConfig()
    manager = NotificationManager()
    manager.register_handler("log", LogNotifier())
    webhook = WebhookNotifier(webhook_url=config.webhook_url, username=config.username)
    if webhook.is_configured():
        manager.register_handler("webhook", webhook)
    return manager


__all__ = [
    "NotificationManager",
    "NotificationEvent",
    "NotificationHandler",
    "EventType",
    "NotificationLevel",
    "LogNotifier",
    "WebhookNotifier",
    "build_notification_manager",
]
