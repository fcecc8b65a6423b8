"""
Server-Sent Events channel over aiohttp
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, AsyncIterator

import aiohttp

from config import DAEMON_CONFIG
from .exceptions import DaemonUnavailableError, DaemonRequestError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SseEvent:
    """One dispatched server-sent event"""
    event: str = "message"
    data: str = ""
    id: Optional[str] = None
    retry: Optional[int] = None


class SseDecoder:
    """Incremental decoder for the text/event-stream format.

    Feed it one line at a time (with or without the trailing newline); it
    returns an SseEvent whenever a blank line completes an event.
    """

    def __init__(self):
        self._event_type = ""
        self._data: List[str] = []
        self._last_id: Optional[str] = None
        self._retry: Optional[int] = None

    def feed_line(self, line: str) -> Optional[SseEvent]:
        line = line.rstrip("\r\n")

        if not line:
            return self._dispatch()

        if line.startswith(":"):
            # comment / keepalive
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event_type = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            if "\0" not in value:
                self._last_id = value
        elif field == "retry":
            if value.isdigit():
                self._retry = int(value)
        else:
            logger.debug(f"Ignoring unknown SSE field: {field!r}")

        return None

    def _dispatch(self) -> Optional[SseEvent]:
        if not self._data and not self._event_type:
            return None

        event = SseEvent(
            event=self._event_type or "message",
            data="\n".join(self._data),
            id=self._last_id,
            retry=self._retry,
        )
        self._event_type = ""
        self._data = []
        self._retry = None
        return event


class EventChannel:
    """A persistent server-pushed channel backed by one streaming HTTP response.

    `open()` completes once the daemon answered with a success status; iterate
    the channel to receive events. Iteration ends when the peer closes the
    stream, and raises DaemonUnavailableError if the transport fails midway.
    """

    def __init__(self, session: aiohttp.ClientSession, url: str, open_timeout: Optional[float] = None):
        self.session = session
        self.url = url
        # Bounds the wait for response headers only; the stream itself has no deadline
        self.open_timeout = open_timeout or session.timeout.total or DAEMON_CONFIG["request_timeout"]
        self.response: Optional[aiohttp.ClientResponse] = None
        self.closed = False

    async def open(self) -> 'EventChannel':
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=10, sock_read=None)
        try:
            response = await asyncio.wait_for(self.session.get(
                self.url,
                headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
                timeout=timeout,
            ), self.open_timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise DaemonUnavailableError(f"Could not open channel {self.url}: {str(e) or type(e).__name__}",
                                         {"url": self.url}) from e

        if response.status != 200:
            message = await _safe_text(response)
            response.release()
            raise DaemonRequestError(self.url, response.status, message)

        self.response = response
        logger.debug(f"Channel opened: {self.url}")
        return self

    async def events(self) -> AsyncIterator[SseEvent]:
        if self.response is None:
            raise RuntimeError("Channel is not open")

        decoder = SseDecoder()
        try:
            async for raw_line in self.response.content:
                event = decoder.feed_line(raw_line.decode("utf-8", errors="replace"))
                if event is not None:
                    yield event
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            if self.closed:
                return
            raise DaemonUnavailableError(f"Channel {self.url} failed: {e}",
                                         {"url": self.url}) from e

    def __aiter__(self) -> AsyncIterator[SseEvent]:
        return self.events()

    async def close(self):
        """Release the underlying response; safe to call more than once"""
        if self.closed:
            return
        self.closed = True
        if self.response is not None:
            self.response.close()
            self.response = None
            logger.debug(f"Channel closed: {self.url}")

    async def __aenter__(self) -> 'EventChannel':
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


async def _safe_text(response: aiohttp.ClientResponse) -> str:
    try:
        return (await response.text())[:200]
    except (aiohttp.ClientError, UnicodeDecodeError):
        return ""
