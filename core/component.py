"""
Base class for components fed by daemon channels.

Transport work (opening channels, reading events, probing, fetching) runs in
background tasks that never touch component state. Those tasks post
InboxMessages; one consumer task applies them in order, so every mutation of
a component's state happens from a single writer and runs to completion.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Set

from daemon.exceptions import DaemonError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InboxMessage:
    """Work item delivered to the component's consumer loop"""
    kind: str
    payload: Any = None
    generation: int = 0


class SupervisedComponent:
    """Start/stop lifecycle around an inbox and a set of owned tasks.

    Subclasses implement `_on_start` (spawn their transport tasks) and
    `_handle` (apply one message). Messages posted by a previous run, or after
    `stop()`, are discarded, so a stop/start cycle behaves like a fresh start.
    """

    def __init__(self, name: str):
        self.name = name
        self._active = False
        self._generation = 0
        self._inbox: Optional[asyncio.Queue] = None
        self._consumer: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

        # Stats
        self.messages_handled = 0
        self.messages_discarded = 0

    @property
    def active(self) -> bool:
        return self._active

    @property
    def generation(self) -> int:
        return self._generation

    async def start(self) -> bool:
        """Begin supervision; returns False if already running"""
        if self._active:
            logger.debug(f"{self.name} already started")
            return False

        self._active = True
        self._generation += 1
        self._inbox = asyncio.Queue()
        self._consumer = asyncio.get_running_loop().create_task(
            self._consume(self._inbox), name=f"{self.name}Inbox"
        )

        logger.info(f"{self.name} started (run {self._generation})")
        self._on_start(self._generation)
        return True

    async def stop(self):
        """Cancel every owned task and wait for them to release their resources"""
        if not self._active:
            return

        self._active = False
        pending = list(self._tasks)
        if self._consumer is not None:
            pending.append(self._consumer)

        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        self._tasks.clear()
        self._consumer = None
        self._inbox = None
        self._on_stop()
        logger.info(f"{self.name} stopped")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    def _on_start(self, generation: int):
        raise NotImplementedError

    def _on_stop(self):
        pass

    def _handle(self, message: InboxMessage):
        raise NotImplementedError

    def _spawn(self, coro: Awaitable, name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=f"{self.name}{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _post(self, kind: str, payload: Any = None, generation: int = 0):
        """Queue a message for the consumer; dropped if it belongs to a stale run"""
        if not self._active or generation != self._generation or self._inbox is None:
            self.messages_discarded += 1
            return
        self._inbox.put_nowait(InboxMessage(kind, payload, generation))

    async def _consume(self, inbox: asyncio.Queue):
        while True:
            message = await inbox.get()
            if not self._active or message.generation != self._generation:
                self.messages_discarded += 1
                continue
            try:
                self._handle(message)
                self.messages_handled += 1
            except Exception:
                logger.exception(f"{self.name} failed to handle {message.kind}")

    async def _pump_channel(self,
                            open_channel: Callable[[], Awaitable[Any]],
                            generation: int,
                            prefix: str):
        """Open one channel and relay it as `<prefix>_open/_event/_error` messages.

        Returns once the channel failed or was closed by the peer. Cancellation
        closes the channel without posting anything.
        """
        try:
            channel = await open_channel()
        except DaemonError as e:
            self._post(f"{prefix}_error", str(e), generation)
            return
        except Exception as e:
            logger.exception(f"{self.name} failed to open {prefix} channel")
            self._post(f"{prefix}_error", str(e) or type(e).__name__, generation)
            return

        reason = "Channel closed by daemon"
        try:
            self._post(f"{prefix}_open", None, generation)
            async for event in channel:
                self._post(f"{prefix}_event", event, generation)
        except DaemonError as e:
            reason = str(e)
        except Exception as e:
            logger.exception(f"{self.name} {prefix} channel failed")
            reason = str(e) or type(e).__name__
        finally:
            await channel.close()

        self._post(f"{prefix}_error", reason, generation)
