"""Test doubles for the daemon transport."""

import asyncio
import json
from typing import List, Optional

from daemon.exceptions import DaemonUnavailableError
from daemon.sse import SseEvent
from telemetry.models import LogEvent, LogLevel


async def wait_until(predicate, timeout: float = 2.0, message: str = "condition not met"):
    """Yield to the loop until predicate() holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError(message)
        await asyncio.sleep(0.005)


def make_log(message: str, level: LogLevel = LogLevel.INFO, source: str = "daemon",
             timestamp: str = "2025-01-01T00:00:00+00:00") -> LogEvent:
    return LogEvent(timestamp=timestamp, level=level, source=source, message=message)


class FakeChannel:
    """Channel whose events are pushed by the test."""

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def push(self, event: str, data: str = ""):
        self.queue.put_nowait(SseEvent(event=event, data=data))

    def push_log(self, log: LogEvent):
        self.push("log", json.dumps(log.to_dict()))

    def fail(self, message: str = "stream reset"):
        self.queue.put_nowait(DaemonUnavailableError(message))

    def end(self):
        self.queue.put_nowait(None)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        while True:
            item = await self.queue.get()
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def close(self):
        self.closed = True


class FakeDaemonClient:
    """Scriptable stand-in for DaemonClient."""

    def __init__(self):
        self.connection_up = True
        self.log_up = True
        self.probe_up = False
        self.probe_gate: Optional[asyncio.Event] = None
        self.backfill = []
        self.backfill_gate: Optional[asyncio.Event] = None

        self.connection_channels: List[FakeChannel] = []
        self.log_channels: List[FakeChannel] = []
        self.connection_open_calls = 0
        self.log_open_calls = 0
        self.probe_calls = 0
        self.backfill_calls = 0

    async def open_connection_channel(self) -> FakeChannel:
        self.connection_open_calls += 1
        if not self.connection_up:
            raise DaemonUnavailableError("connection refused")
        channel = FakeChannel()
        self.connection_channels.append(channel)
        return channel

    async def open_log_channel(self) -> FakeChannel:
        self.log_open_calls += 1
        if not self.log_up:
            raise DaemonUnavailableError("connection refused")
        channel = FakeChannel()
        self.log_channels.append(channel)
        return channel

    async def probe(self):
        self.probe_calls += 1
        call = self.probe_calls
        if self.probe_gate is not None:
            await self.probe_gate.wait()
        if not self.probe_up:
            raise DaemonUnavailableError(f"probe failed #{call}")
        return {"buffering": True}

    async def fetch_recent_logs(self):
        self.backfill_calls += 1
        if self.backfill_gate is not None:
            await self.backfill_gate.wait()
        if isinstance(self.backfill, Exception):
            raise self.backfill
        return list(self.backfill)
