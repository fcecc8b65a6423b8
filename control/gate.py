"""
Connection gate shared by all daemon-dependent actions
"""

import logging
from typing import Optional

from core.connection_state import ConnectionStore, ConnectionStatus
from daemon.exceptions import DaemonError, DaemonNotConnectedError
from events import EventBus, EventTypes

logger = logging.getLogger(__name__)


class ConnectionGate:
    """Read-only view of link health used to refuse actions while disconnected"""

    def __init__(self, store: ConnectionStore, event_bus: Optional[EventBus] = None):
        self.store = store
        self.event_bus = event_bus

    @property
    def is_open(self) -> bool:
        return self.store.status == ConnectionStatus.CONNECTED

    def require_connected(self, action: str):
        """Raise DaemonNotConnectedError unless the daemon is connected"""
        if not self.is_open:
            raise DaemonNotConnectedError(action, self.store.status.value)

    def notify_error(self, title: str, error: DaemonError):
        """Publish a user-visible error notification"""
        logger.error(f"{title}: {error}")
        if self.event_bus is not None:
            self.event_bus.emit(EventTypes.NOTIFICATION_ERROR, {
                "title": title,
                "description": str(error),
                "error_type": type(error).__name__
            }, source="control")

    def notify_info(self, title: str, description: str = ""):
        logger.info(f"{title} {description}".strip())
        if self.event_bus is not None:
            self.event_bus.emit(EventTypes.NOTIFICATION_INFO, {
                "title": title,
                "description": description
            }, source="control")
