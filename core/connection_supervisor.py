"""
Connection supervisor: keeps ConnectionState in line with the daemon link
"""

import asyncio
import logging
from typing import Optional, Dict, Any

from config import SUPERVISOR_CONFIG
from daemon.exceptions import DaemonError
from .component import SupervisedComponent, InboxMessage
from .connection_state import ConnectionStore, ConnectionStatus

logger = logging.getLogger(__name__)


class ConnectionSupervisor(SupervisedComponent):
    """Single writer of link health.

    On start it marks the link `connecting` and opens the daemon's status
    channel. Channel open means `connected`; any channel failure means
    `disconnected` with "Connection lost". While disconnected a fixed-interval
    probe polls the daemon; a successful probe marks the link `connected` and
    reopens the channel.
    """

    def __init__(self,
                 client,
                 store: ConnectionStore,
                 poll_interval: Optional[float] = None,
                 reopen_channel_on_probe: Optional[bool] = None,
                 lost_message: Optional[str] = None):
        """
        Initialize connection supervisor

        Args:
            client: Daemon client exposing probe() and open_connection_channel()
            store: Store this supervisor becomes the sole writer of
            poll_interval: Seconds between liveness probes while disconnected
            reopen_channel_on_probe: Reopen the status channel after a successful probe
            lost_message: Error recorded when the channel fails
        """
        super().__init__("ConnectionSupervisor")
        self.client = client
        self.store = store
        self.writer = store.claim_writer(self.name)

        self.poll_interval = poll_interval if poll_interval is not None else SUPERVISOR_CONFIG["poll_interval"]
        self.reopen_channel_on_probe = (reopen_channel_on_probe if reopen_channel_on_probe is not None
                                        else SUPERVISOR_CONFIG["reopen_channel_on_probe"])
        self.lost_message = lost_message or SUPERVISOR_CONFIG["lost_message"]

        self._channel_task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None

        # Stats
        self.channel_opens = 0
        self.channel_failures = 0
        self.probe_successes = 0
        self.probe_failures = 0
        self.timers_started = 0

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def channel_active(self) -> bool:
        return self._channel_task is not None and not self._channel_task.done()

    def _on_start(self, generation: int):
        self.writer.mark_connecting("supervisor started")
        self._open_channel(generation)

    def _on_stop(self):
        self._channel_task = None
        self._poll_task = None

    def _open_channel(self, generation: int):
        if self.channel_active:
            return
        self._channel_task = self._spawn(
            self._pump_channel(self.client.open_connection_channel, generation, "channel"),
            "Channel",
        )

    def _handle(self, message: InboxMessage):
        kind = message.kind

        if kind == "channel_open":
            self.channel_opens += 1
            self.writer.mark_connected("status channel open")

        elif kind == "channel_event":
            logger.debug(f"Status channel event: {message.payload.event}")
            if self.store.status != ConnectionStatus.CONNECTED:
                self.writer.mark_connected(f"status channel event {message.payload.event}")

        elif kind == "channel_error":
            self.channel_failures += 1
            logger.warning(f"Status channel failed: {message.payload}")
            self.writer.mark_disconnected(self.lost_message, "status channel error")

        elif kind == "probe_ok":
            self.probe_successes += 1
            if self.store.status != ConnectionStatus.CONNECTED:
                self.writer.mark_connected("liveness probe succeeded")
            if self.reopen_channel_on_probe:
                self._open_channel(message.generation)

        elif kind == "probe_failed":
            self.probe_failures += 1
            # Probes only speak for a disconnected link; late results are ignored
            if self.store.status == ConnectionStatus.DISCONNECTED:
                self.writer.mark_disconnected(message.payload or self.lost_message,
                                              "liveness probe failed")

        else:
            logger.warning(f"Unknown supervisor message: {kind}")

        self._sync_timer(message.generation)

    def _sync_timer(self, generation: int):
        """Poll only while disconnected"""
        if self.store.status == ConnectionStatus.DISCONNECTED:
            if not self.polling:
                self.timers_started += 1
                self._poll_task = self._spawn(self._poll(generation), "Poll")
        elif self.polling:
            self._poll_task.cancel()
            self._poll_task = None

    async def _poll(self, generation: int):
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.client.probe()
            except DaemonError as e:
                self._post("probe_failed", str(e), generation)
            except Exception as e:
                # Keep polling; an unexpected error is still a failed probe
                logger.exception("Liveness probe raised unexpectedly")
                self._post("probe_failed", str(e) or type(e).__name__, generation)
            else:
                self._post("probe_ok", None, generation)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active": self.active,
            "status": self.store.status.value,
            "last_error": self.store.last_error,
            "polling": self.polling,
            "channel_active": self.channel_active,
            "channel_opens": self.channel_opens,
            "channel_failures": self.channel_failures,
            "probe_successes": self.probe_successes,
            "probe_failures": self.probe_failures,
            "timers_started": self.timers_started,
        }
