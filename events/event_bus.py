"""
Event bus for broadcasting control surface events to views and collaborators
"""

import asyncio
import logging
import time
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Dict, Any, List, Callable, Optional

logger = logging.getLogger(__name__)


class SystemEvent:
    """Represents a system event"""

    def __init__(self, event_type: str, data: Dict[str, Any], source: str = None):
        self.id = str(uuid.uuid4())
        self.type = event_type
        self.data = data
        self.source = source or "system"
        self.timestamp = time.time()
        self.datetime = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary"""
        return {
            "id": self.id,
            "type": self.type,
            "data": self.data,
            "source": self.source,
            "timestamp": self.timestamp,
            "datetime": self.datetime
        }


class EventBus:
    """Publish/subscribe bus dispatching on the asyncio event loop.

    `emit` never blocks: events are queued and delivered to listeners by a
    single processor task, in emission order. The bus is an owned object;
    pass it to the components that publish or subscribe.
    """

    def __init__(self, max_history: int = 1000):
        self.listeners: Dict[str, List[Callable]] = defaultdict(list)
        self.event_queue: asyncio.Queue = asyncio.Queue()
        self.event_history: List[SystemEvent] = []
        self.max_history = max_history
        self._processor_task: Optional[asyncio.Task] = None

        # Performance metrics
        self.event_counts = defaultdict(int)
        self.listener_errors = 0

    def emit(self, event_type: str, data: Dict[str, Any], source: str = None) -> SystemEvent:
        """Emit an event to the bus"""
        event = SystemEvent(event_type, data, source)
        self.event_counts[event.type] += 1

        self.event_history.append(event)
        if len(self.event_history) > self.max_history:
            self.event_history.pop(0)

        self.event_queue.put_nowait(event)
        return event

    def on(self, event_type: str, callback: Callable[[SystemEvent], None]):
        """Register a listener for specific event type"""
        self.listeners[event_type].append(callback)

    def on_all(self, callback: Callable[[SystemEvent], None]):
        """Register a listener for all events"""
        self.listeners["*"].append(callback)

    def off(self, event_type: str, callback: Callable[[SystemEvent], None]):
        """Remove a listener"""
        if callback in self.listeners[event_type]:
            self.listeners[event_type].remove(callback)

    @property
    def running(self) -> bool:
        return self._processor_task is not None and not self._processor_task.done()

    def start(self):
        """Start the processor task on the running loop"""
        if self.running:
            return
        self._processor_task = asyncio.get_running_loop().create_task(
            self._process_events(), name="EventBusProcessor"
        )

    async def _process_events(self):
        """Deliver queued events to listeners"""
        while True:
            event = await self.event_queue.get()
            try:
                self._dispatch(event)
            finally:
                self.event_queue.task_done()

    def _dispatch(self, event: SystemEvent):
        for listener in list(self.listeners.get(event.type, [])) + list(self.listeners.get("*", [])):
            try:
                listener(event)
            except Exception:
                self.listener_errors += 1
                logger.exception(f"Error in event listener for {event.type}")

    async def drain(self):
        """Wait until every queued event has been delivered"""
        if self.running:
            await self.event_queue.join()

    def get_stats(self) -> Dict[str, Any]:
        """Get event bus statistics"""
        return {
            "total_events": sum(self.event_counts.values()),
            "event_counts": dict(self.event_counts),
            "queue_size": self.event_queue.qsize(),
            "history_size": len(self.event_history),
            "listener_errors": self.listener_errors,
            "listener_counts": {
                event_type: len(listeners)
                for event_type, listeners in self.listeners.items()
            }
        }

    def get_recent_events(self, count: int = 50, event_type: str = None) -> List[Dict[str, Any]]:
        """Get recent events from history"""
        events = self.event_history

        if event_type:
            events = [e for e in events if e.type == event_type]

        return [e.to_dict() for e in events[-count:]]

    async def shutdown(self):
        """Deliver pending events, then stop the processor"""
        if not self.running:
            return
        await self.drain()
        self._processor_task.cancel()
        try:
            await self._processor_task
        except asyncio.CancelledError:
            pass
        self._processor_task = None


# Event type constants
class EventTypes:
    # Connection events
    CONNECTION_STATUS_CHANGED = "connection.status_changed"

    # Telemetry events
    TELEMETRY_LOG_APPENDED = "telemetry.log_appended"
    TELEMETRY_BACKFILL_LOADED = "telemetry.backfill_loaded"
    TELEMETRY_STREAM_STATE = "telemetry.stream_state"

    # User-visible notifications
    NOTIFICATION_ERROR = "notification.error"
    NOTIFICATION_INFO = "notification.info"

    # System events
    SYSTEM_START = "system.start"
    SYSTEM_STOP = "system.stop"
