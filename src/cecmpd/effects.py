"""Side effects the state machines may request.

Reducers never talk to a transport directly; they call into an ``Effects``
object which routes receiver commands through the rate-limited queue and
runs player and TV requests as fire-and-forget tasks.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Coroutine, Optional

from cecmpd.bravia import BraviaClient
from cecmpd.cec import DEFAULT_OSD_MAX_LENGTH, osd_command
from cecmpd.commands import CommandQueue
from cecmpd.errors import MPDError, TransportClosed
from cecmpd.mpd_client import MPDClient

logger = logging.getLogger(__name__)


class Effects:
    """Dispatches commands to the receiver, the player and the TV."""

    def __init__(
        self,
        commands: CommandQueue,
        mpd: MPDClient,
        bravia: Optional[BraviaClient] = None,
        osd_max_length: int = DEFAULT_OSD_MAX_LENGTH,
    ):
        self.commands = commands
        self.mpd = mpd
        self.bravia = bravia
        self.osd_max_length = osd_max_length
        self._tasks: set[asyncio.Task] = set()

    @property
    def tv_enabled(self) -> bool:
        return self.bravia is not None

    def cec(self, command: str, delay: float = 0.0, gap: Optional[float] = None) -> None:
        self.commands.submit(command, delay=delay, gap=gap)

    def prompt(self, text: str, delay: float = 0.0) -> None:
        """Show text on the receiver OSD."""
        self.cec(osd_command(text, self.osd_max_length), delay=delay)

    def player(self, *commands: str, delay: float = 0.0) -> None:
        self._spawn(self._send_player(commands, delay), f"mpd {' '.join(commands)}")

    def tv_launch(self, delay: float = 0.0) -> None:
        if self.bravia is not None:
            self._spawn(self._after(delay, self.bravia.wake_and_launch), "bravia wake")

    def tv_standby(self) -> None:
        if self.bravia is not None:
            self._spawn(self.bravia.standby(), "bravia standby")

    async def _send_player(self, commands: tuple[str, ...], delay: float) -> None:
        if delay:
            await asyncio.sleep(delay)
        try:
            await self.mpd.send(*commands)
        except (MPDError, TransportClosed, OSError, asyncio.TimeoutError) as e:
            logger.warning("MPD command %s failed: %s", ", ".join(commands), e)

    @staticmethod
    async def _after(delay: float, factory: Callable[[], Awaitable[None]]) -> None:
        if delay:
            await asyncio.sleep(delay)
        await factory()

    def _spawn(self, coro: Coroutine, name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def pending(self) -> int:
        return len(self._tasks)

    async def close(self) -> None:
        """Abandon every pending effect."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
