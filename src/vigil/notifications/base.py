"""Base notification classes and event types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from vigil.logging_config import get_logger

logger = get_logger(__name__)


class NotificationLevel(str, Enum):
    """Notification severity levels."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class EventType(str, Enum):
    """Events that reach an operator."""

    # Watchdog
    SUBAGENT_TAKEOVER = "subagent_takeover"

    # Deployment
    DEPLOYMENT_SUCCEEDED = "deployment_succeeded"
    DEPLOYMENT_FAILED = "deployment_failed"
    ROLLBACK_COMPLETED = "rollback_completed"
    ROLLBACK_FAILED = "rollback_failed"

    ERROR_OCCURRED = "error_occurred"


@dataclass
class NotificationEvent:
    """Structured notification event."""

    event_type: EventType
    title: str
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    timestamp: datetime = field(default_factory=datetime.now)

    # Optional context
    environment: Optional[str] = None
    escalation_level: Optional[int] = None
    metrics: dict[str, Any] = field(default_factory=dict)
    error_details: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary."""
        data = asdict(self)
        data["event_type"] = self.event_type.value
        data["level"] = self.level.value
        data["timestamp"] = self.timestamp.isoformat()
        return data

    def __str__(self) -> str:
        return f"[{self.level.value.upper()}] {self.title}: {self.message}"


class NotificationHandler(ABC):
    """Base class for notification handlers."""

    @abstractmethod
    def send(self, event: NotificationEvent) -> bool:
        """Send notification for event.

        Returns:
            True if successful, False otherwise
        """

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if handler is properly configured."""


class LogNotifier(NotificationHandler):
    """Write notifications to the vigil log. Always configured."""

    _levels = {
        NotificationLevel.INFO: 20,
        NotificationLevel.SUCCESS: 20,
        NotificationLevel.WARNING: 30,
        NotificationLevel.ERROR: 40,
        NotificationLevel.CRITICAL: 50,
    }

    def is_configured(self) -> bool:
        return True

    def send(self, event: NotificationEvent) -> bool:
        logger.log(self._levels.get(event.level, 20), f"ALERT {event}")
        return True


class NotificationManager:
    """Manages notifications across multiple channels.

    ``sent`` keeps only the most recent ``history_size`` events.
    """

    def __init__(self, history_size: int = 100):
        self.handlers: dict[str, NotificationHandler] = {}
        self.enabled_channels: set[str] = set()
        self.sent: deque[NotificationEvent] = deque(maxlen=history_size)

    def register_handler(self, name: str, handler: NotificationHandler) -> None:
        """Register a notification handler.

        Args:
            name: Handler name (e.g., 'log', 'webhook')
            handler: Notification handler instance
        """
        self.handlers[name] = handler
        if handler.is_configured():
            self.enabled_channels.add(name)
            logger.debug(f"Registered notification handler: {name}")
        else:
            logger.warning(f"Handler {name} not properly configured, skipping")

    def notify(
        self,
        title: str,
        message: str,
        event_type: EventType = EventType.ERROR_OCCURRED,
        level: NotificationLevel = NotificationLevel.INFO,
        **kwargs: Any,
    ) -> bool:
        """Send notification to all enabled channels.

        Returns:
            True if sent to at least one channel
        """
        event = NotificationEvent(
            event_type=event_type,
            title=title,
            message=message,
            level=level,
            **kwargs,
        )
        return self.send_event(event)

    def send_event(self, event: NotificationEvent) -> bool:
        """Send a pre-constructed event; handler failures are logged, not raised."""
        self.sent.append(event)
        if not self.enabled_channels:
            logger.warning("No notification channels enabled")
            return False

        sent_count = 0
        for channel in sorted(self.enabled_channels):
            handler = self.handlers[channel]
            try:
                if handler.send(event):
                    sent_count += 1
            except Exception as e:
                logger.error(f"Failed to send notification via {channel}: {e}", exc_info=True)

        return sent_count > 0
