"""Rate-limited outbound queue for receiver commands.

Every command written to the bus goes through one ``CommandQueue`` so that
the minimum spacing between two transmissions holds no matter which
component scheduled them.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

Writer = Callable[[str], Awaitable[None]]


class CommandSink(Protocol):
    """Anything that accepts receiver commands."""

    def cec(self, command: str, delay: float = 0.0, gap: Optional[float] = None) -> None:
        ...


@dataclass(order=True)
class QueuedCommand:
    """A command waiting for its turn on the bus."""

    not_before: float
    seq: int
    command: str = field(compare=False)
    gap: float = field(compare=False)


class CommandQueue:
    """Single writer for the receiver, enforcing a minimum inter-command gap.

    Commands become eligible at ``not_before`` (submission time plus delay)
    and are written in eligibility order. Each write waits until at least
    ``gap`` seconds have passed since the previous write.
    """

    def __init__(
        self,
        writer: Writer,
        min_interval: float = 0.25,
        clock: Optional[Callable[[], float]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.writer = writer
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._queue: asyncio.PriorityQueue[QueuedCommand] = asyncio.PriorityQueue()
        self._seq = itertools.count()
        self._last_sent: Optional[float] = None
        self._worker: Optional[asyncio.Task] = None
        self._submitted = asyncio.Event()

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    def submit(self, command: str, delay: float = 0.0, gap: Optional[float] = None) -> None:
        """Schedule a command; never blocks."""
        spacing = self.min_interval if gap is None else max(gap, self.min_interval)
        item = QueuedCommand(
            not_before=self._now() + delay,
            seq=next(self._seq),
            command=command,
            gap=spacing,
        )
        logger.debug("Queued %r (delay %.2fs, gap %.2fs)", command, delay, spacing)
        self._queue.put_nowait(item)
        self._submitted.set()

    def pending(self) -> int:
        return self._queue.qsize()

    def _due(self, item: QueuedCommand) -> float:
        if self._last_sent is None:
            return item.not_before
        return max(item.not_before, self._last_sent + item.gap)

    async def _wait_or_submitted(self, timeout: float) -> bool:
        """Sleep up to timeout; return whether a command was submitted meanwhile."""
        self._submitted.clear()
        sleeper = asyncio.ensure_future(self._sleep(timeout))
        waker = asyncio.ensure_future(self._submitted.wait())
        try:
            await asyncio.wait({sleeper, waker}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            waker.cancel()
        return self._submitted.is_set()

    async def drain_once(self) -> str:
        """Wait for the next eligible command, write it and return it."""
        while True:
            item = await self._queue.get()
            self._queue.task_done()
            wait = self._due(item) - self._now()
            if wait <= 0 or not await self._wait_or_submitted(wait):
                break
            # A newer command may be due first
            self._queue.put_nowait(item)

        await self.writer(item.command)
        self._last_sent = self._now()
        return item.command

    async def run(self) -> None:
        while True:
            await self.drain_once()

    def start(self) -> asyncio.Task:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self.run(), name="cec-command-queue")
        return self._worker

    async def stop(self) -> None:
        """Cancel the worker; queued commands are dropped."""
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning("Command writer had failed: %s", e)
            self._worker = None
        dropped = self._queue.qsize()
        if dropped:
            logger.debug("Dropping %d queued command(s)", dropped)
