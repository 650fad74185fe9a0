"""
Notification adapters.

The engine only emits intents; delivery (email, SMS) belongs to an external
notifier that consumes them.
"""

import logging
from typing import List

from ..domain.models import NotificationIntent

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Logs every intent. Useful as the default when no delivery is wired up."""

    def send(self, intent: NotificationIntent) -> None:
        logger.info("Queued %s notification for booking %s", intent.kind.value, intent.booking_id)


class OutboxNotifier:
    """
    Collects intents in an outbox for a delivery worker (or a test) to drain.
    """

    def __init__(self) -> None:
        self.outbox: List[NotificationIntent] = []

    def send(self, intent: NotificationIntent) -> None:
        logger.debug("Outbox: %s for booking %s", intent.kind.value, intent.booking_id)
        self.outbox.append(intent)

    def drain(self) -> List[NotificationIntent]:
        """Return and clear the pending intents."""
        pending, self.outbox = self.outbox, []
        return pending
