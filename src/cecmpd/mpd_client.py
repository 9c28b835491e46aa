"""MPD line-protocol client."""

import asyncio
import logging
from typing import AsyncIterator, Optional

from cecmpd.errors import MPDError, TransportClosed
from cecmpd.models import PlayerStatus

logger = logging.getLogger(__name__)

IDLE_SUBSYSTEMS = ("player", "options", "playlist")


def quote(argument: str) -> str:
    """Quote an argument for the MPD protocol."""
    escaped = argument.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def parse_response(lines: list[str]) -> dict[str, str]:
    """Turn `key: value` lines (terminator excluded) into a dict.

    Later keys win, which is what we want for the trailing `status` block.
    """
    fields: dict[str, str] = {}
    for line in lines:
        key, sep, value = line.partition(":")
        if not sep:
            continue
        fields[key.strip()] = value.strip()
    return fields


def build_command_list(commands: tuple[str, ...]) -> str:
    """Wrap commands in a command list that ends with a status query."""
    body = [c for c in commands if c != "status"]
    return "\n".join(["command_list_begin", *body, "status", "command_list_end", ""])


class MPDClient:
    """Async client for the MPD control socket."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6600,
        timeout: float = 5.0,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout

    async def _open(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(self.host, self.port),
            timeout=self.timeout,
        )
        greeting = await self._read_line(reader, timeout=self.timeout)
        if not greeting.startswith("OK"):
            writer.close()
            raise MPDError(greeting)
        return reader, writer

    @staticmethod
    async def _read_line(reader: asyncio.StreamReader, timeout: Optional[float]) -> str:
        raw = await asyncio.wait_for(reader.readline(), timeout=timeout)
        if not raw:
            raise TransportClosed("MPD closed the connection")
        return raw.decode("utf-8", errors="replace").rstrip("\n")

    async def _read_response(
        self, reader: asyncio.StreamReader, timeout: Optional[float]
    ) -> list[str]:
        """Read lines up to and including the terminator."""
        lines = []
        while True:
            line = await self._read_line(reader, timeout)
            if line.startswith("OK"):
                return lines
            if line.startswith("ACK"):
                raise MPDError(line)
            lines.append(line)

    async def _send_command(self, payload: str) -> list[str]:
        """Send a raw payload on a fresh connection and return the response lines."""
        reader, writer = await self._open()
        try:
            writer.write(payload.encode("utf-8"))
            await writer.drain()
            return await self._read_response(reader, self.timeout)
        finally:
            writer.close()
            await writer.wait_closed()

    async def send(self, *commands: str) -> PlayerStatus:
        """Run commands as one command list and return the resulting status."""
        logger.debug("MPD <- %s", ", ".join(commands) or "status")
        lines = await self._send_command(build_command_list(commands))
        return PlayerStatus.from_fields(parse_response(lines))

    async def status(self) -> PlayerStatus:
        return await self.send()

    async def update(self) -> PlayerStatus:
        """Rescan the music directory."""
        return await self.send("update")

    async def watch(self) -> AsyncIterator[PlayerStatus]:
        """Yield a fresh status after every change of the watched subsystems.

        A failed status request is logged and skipped. Raises TransportClosed
        when the idle connection drops.
        """
        reader, writer = await self._open()
        idle = f"idle {' '.join(IDLE_SUBSYSTEMS)}\n".encode("utf-8")
        try:
            while True:
                writer.write(idle)
                await writer.drain()
                changed = await self._read_response(reader, timeout=None)
                logger.debug("MPD %s", "; ".join(changed))
                try:
                    status = await self.status()
                except (MPDError, TransportClosed, OSError, asyncio.TimeoutError) as e:
                    logger.warning("MPD status after change failed: %s", e)
                    continue
                yield status
        except (ConnectionError, asyncio.IncompleteReadError) as e:
            raise TransportClosed(f"MPD idle connection lost: {e}") from e
        finally:
            writer.close()
