"""
Connection state store: the single source of truth for daemon link health
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional, Callable, List

from events import EventBus, EventTypes

logger = logging.getLogger(__name__)


class ConnectionStatus(str, Enum):
    """Link health as seen by every consumer"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class ConnectionState:
    """Immutable snapshot handed to readers"""
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    last_error: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED


class StatusTransition:
    """Represents a recorded state change"""
    def __init__(self, old: ConnectionState, new: ConnectionState, reason: str = ""):
        self.old = old
        self.new = new
        self.reason = reason
        self.timestamp = time.time()
        self.datetime = datetime.now()

    def __str__(self):
        return f"{self.old.status.value} → {self.new.status.value} ({self.reason})"


StateListener = Callable[[ConnectionState, ConnectionState], None]


class ConnectionStore:
    """Holds ConnectionState and notifies listeners on every change.

    Readers call `state`, `status` or `is_connected()`. Writes go through the
    one ConnectionStateWriter handed out by `claim_writer()`.
    """

    def __init__(self, event_bus: Optional[EventBus] = None, max_history: int = 100):
        self._state = ConnectionState()
        self.event_bus = event_bus
        self._writer: Optional['ConnectionStateWriter'] = None

        self.listeners: List[StateListener] = []

        # State history
        self.transitions: List[StatusTransition] = []
        self.max_history = max_history
        self.state_start_time = time.time()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def last_error(self) -> Optional[str]:
        return self._state.last_error

    def is_connected(self) -> bool:
        return self._state.is_connected

    def claim_writer(self, owner: str) -> 'ConnectionStateWriter':
        """Hand out the only write handle; a second claimant is refused"""
        if self._writer is not None:
            raise RuntimeError(
                f"ConnectionStore already written by {self._writer.owner}, refused {owner}"
            )
        self._writer = ConnectionStateWriter(self, owner)
        return self._writer

    def add_listener(self, listener: StateListener):
        self.listeners.append(listener)

    def remove_listener(self, listener: StateListener):
        if listener in self.listeners:
            self.listeners.remove(listener)

    def _apply(self, new_state: ConnectionState, reason: str, source: str) -> bool:
        old_state = self._state
        if new_state == old_state:
            return False

        self._state = new_state
        self.state_start_time = time.time()

        transition = StatusTransition(old_state, new_state, reason)
        self.transitions.append(transition)
        if len(self.transitions) > self.max_history:
            self.transitions = self.transitions[-self.max_history:]

        logger.info(f"Connection state: {transition}")

        if self.event_bus is not None:
            self.event_bus.emit(EventTypes.CONNECTION_STATUS_CHANGED, {
                "from_status": old_state.status.value,
                "to_status": new_state.status.value,
                "last_error": new_state.last_error,
                "reason": reason
            }, source=source)

        self._notify_listeners(old_state, new_state)
        return True

    def _notify_listeners(self, old_state: ConnectionState, new_state: ConnectionState):
        for listener in list(self.listeners):
            try:
                listener(old_state, new_state)
            except Exception:
                logger.exception("Error in connection state listener")

    def get_transition_history(self, limit: int = 10) -> List[Dict[str, Any]]:
        recent = self.transitions[-limit:] if self.transitions else []
        return [
            {
                "from": t.old.status.value,
                "to": t.new.status.value,
                "last_error": t.new.last_error,
                "reason": t.reason,
                "timestamp": t.timestamp,
                "datetime": t.datetime.isoformat()
            }
            for t in recent
        ]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "status": self._state.status.value,
            "last_error": self._state.last_error,
            "state_duration": time.time() - self.state_start_time,
            "transition_count": len(self.transitions),
            "writer": self._writer.owner if self._writer else None
        }


class ConnectionStateWriter:
    """Write handle for ConnectionStore, owned by exactly one component"""

    def __init__(self, store: ConnectionStore, owner: str):
        self.store = store
        self.owner = owner

    def mark_connecting(self, reason: str = "") -> bool:
        return self.store._apply(
            ConnectionState(ConnectionStatus.CONNECTING, self.store.last_error), reason, self.owner
        )

    def mark_connected(self, reason: str = "") -> bool:
        # Entering connected always clears the last error
        return self.store._apply(ConnectionState(ConnectionStatus.CONNECTED, None), reason, self.owner)

    def mark_disconnected(self, error: str, reason: str = "") -> bool:
        return self.store._apply(ConnectionState(ConnectionStatus.DISCONNECTED, error), reason, self.owner)
