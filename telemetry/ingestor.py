"""
Telemetry ingestor: merges log backfill and the live log channel into a LogBuffer
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, Dict, Any, Callable, List

from config import TELEMETRY_CONFIG
from core.component import SupervisedComponent, InboxMessage
from daemon.exceptions import DaemonError, MalformedPayloadError
from events import EventBus, EventTypes
from .log_buffer import LogBuffer
from .models import LogEvent

logger = logging.getLogger(__name__)


class StreamState(Enum):
    """Live log channel states"""
    IDLE = "idle"
    OPENING = "opening"
    STREAMING = "streaming"
    DISCONNECTED = "disconnected"  # disconnect already reported for this episode


class TelemetryIngestor(SupervisedComponent):
    """Sole writer of the log buffer shown to the user.

    Buffer layout is always [backfill, server order] followed by [live events,
    arrival order], capped at the buffer size with the oldest entries evicted.
    Transport failures appear as synthetic `system` entries: one for a failed
    backfill, one per live-stream disconnection episode.
    """

    def __init__(self,
                 client,
                 buffer: Optional[LogBuffer] = None,
                 event_bus: Optional[EventBus] = None,
                 retry_interval: Optional[float] = None):
        """
        Initialize telemetry ingestor

        Args:
            client: Daemon client exposing fetch_recent_logs() and open_log_channel()
            buffer: Buffer to fill (a new one sized from TELEMETRY_CONFIG by default)
            event_bus: Bus notified of appended entries and stream state changes
            retry_interval: Seconds to wait before reopening a failed log channel
        """
        super().__init__("TelemetryIngestor")
        self.client = client
        self.buffer = buffer if buffer is not None else LogBuffer(TELEMETRY_CONFIG["max_logs"])
        self.event_bus = event_bus
        self.retry_interval = retry_interval if retry_interval is not None else TELEMETRY_CONFIG["retry_interval"]
        self.log_event_name = TELEMETRY_CONFIG["log_event_name"]

        self.stream_state = StreamState.IDLE
        self.listeners: List[Callable[[LogEvent], None]] = []

        # Stats
        self.received_count = 0
        self.malformed_count = 0
        self.disconnect_episodes = 0
        self.backfill_count = 0

    @property
    def disconnect_reported(self) -> bool:
        """True while the current disconnection has been recorded in the buffer"""
        return self.stream_state == StreamState.DISCONNECTED

    @property
    def logs(self):
        return self.buffer.snapshot()

    def add_listener(self, listener: Callable[[LogEvent], None]):
        self.listeners.append(listener)

    def remove_listener(self, listener: Callable[[LogEvent], None]):
        if listener in self.listeners:
            self.listeners.remove(listener)

    def _on_start(self, generation: int):
        self._set_stream_state(StreamState.OPENING)
        self._spawn(self._backfill(generation), "Backfill")
        self._spawn(self._stream(generation), "Stream")

    def _on_stop(self):
        self.stream_state = StreamState.IDLE

    async def _backfill(self, generation: int):
        try:
            events = await self.client.fetch_recent_logs()
        except DaemonError as e:
            self._post("backfill_failed", str(e), generation)
        except Exception as e:
            logger.exception("Recent log fetch raised unexpectedly")
            self._post("backfill_failed", str(e) or type(e).__name__, generation)
        else:
            self._post("backfill_loaded", events, generation)

    async def _stream(self, generation: int):
        """Keep the log channel open, retrying at a fixed interval"""
        while True:
            await self._pump_channel(self.client.open_log_channel, generation, "stream")
            await asyncio.sleep(self.retry_interval)

    def _handle(self, message: InboxMessage):
        kind = message.kind

        if kind == "stream_event":
            self._ingest(message.payload)

        elif kind == "stream_open":
            self._set_stream_state(StreamState.STREAMING)

        elif kind == "stream_error":
            logger.warning(f"Log stream failed: {message.payload}")
            if not self.disconnect_reported:
                self.disconnect_episodes += 1
                self._append(LogEvent.synthetic(TELEMETRY_CONFIG["disconnected_message"]))
                self._set_stream_state(StreamState.DISCONNECTED)

        elif kind == "backfill_loaded":
            events = list(message.payload or [])
            evicted = self.buffer.prepend(events)
            retained = events[min(evicted, len(events)):]
            self.backfill_count = len(events)
            logger.info(f"Loaded {len(events)} recent log events ({evicted} evicted)")
            if self.event_bus is not None:
                self.event_bus.emit(EventTypes.TELEMETRY_BACKFILL_LOADED, {
                    "count": len(events),
                    "evicted": evicted,
                    "events": [event.to_dict() for event in retained]
                }, source=self.name)

        elif kind == "backfill_failed":
            logger.warning(f"Backfill failed: {message.payload}")
            failed = TELEMETRY_CONFIG["backfill_failed_message"]
            self._append(LogEvent.synthetic(f"{failed}: {message.payload}" if message.payload else failed))

        else:
            logger.warning(f"Unknown ingestor message: {kind}")

    def _ingest(self, sse_event):
        if sse_event.event != self.log_event_name:
            # keepalives and other channel chatter
            return

        try:
            event = LogEvent.from_json(sse_event.data)
        except MalformedPayloadError as e:
            self.malformed_count += 1
            logger.warning(f"Dropping malformed log message: {e}")
            return

        self.received_count += 1
        self._append(event)

    def _append(self, event: LogEvent):
        self.buffer.append(event)

        for listener in list(self.listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Error in log listener")

        if self.event_bus is not None:
            self.event_bus.emit(EventTypes.TELEMETRY_LOG_APPENDED, event.to_dict(), source=self.name)

    def _set_stream_state(self, state: StreamState):
        if state == self.stream_state:
            return
        logger.debug(f"Log stream: {self.stream_state.value} → {state.value}")
        self.stream_state = state
        if self.event_bus is not None:
            self.event_bus.emit(EventTypes.TELEMETRY_STREAM_STATE, {"state": state.value}, source=self.name)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active": self.active,
            "stream_state": self.stream_state.value,
            "buffer_size": len(self.buffer),
            "buffer_capacity": self.buffer.max_size,
            "evicted": self.buffer.evicted,
            "received": self.received_count,
            "malformed": self.malformed_count,
            "backfill_count": self.backfill_count,
            "disconnect_episodes": self.disconnect_episodes,
        }
