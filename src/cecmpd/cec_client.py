"""cec-client subprocess transport."""

import asyncio
import logging
from typing import AsyncIterator, Optional

from cecmpd.errors import TransportClosed

logger = logging.getLogger(__name__)


class CecClient:
    """Runs cec-client and exposes its traffic lines and its stdin."""

    def __init__(self, binary: str = "cec-client", osd_name: str = "Loading..."):
        self.binary = binary
        self.osd_name = osd_name
        self._process: Optional[asyncio.subprocess.Process] = None

    @property
    def args(self) -> list[str]:
        return [self.binary, "-o", self.osd_name]

    async def start(self) -> None:
        logger.info("Starting %s", " ".join(self.args))
        self._process = await asyncio.create_subprocess_exec(
            *self.args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )

    def _require_process(self) -> asyncio.subprocess.Process:
        if self._process is None:
            raise RuntimeError("cec-client has not been started")
        return self._process

    async def lines(self) -> AsyncIterator[str]:
        """Yield stdout lines until cec-client exits, then raise TransportClosed."""
        process = self._require_process()
        assert process.stdout is not None
        while True:
            raw = await process.stdout.readline()
            if not raw:
                break
            yield raw.decode("utf-8", errors="replace").rstrip("\r\n")
        code = await process.wait()
        raise TransportClosed(f"cec-client exited with code {code}")

    async def write(self, command: str) -> None:
        process = self._require_process()
        assert process.stdin is not None
        if process.returncode is not None:
            raise TransportClosed(f"cec-client exited with code {process.returncode}")
        logger.debug("CEC <- %s", command)
        process.stdin.write(f"{command}\n".encode("utf-8"))
        await process.stdin.drain()

    async def close(self) -> None:
        """Kill cec-client if it is still running."""
        process = self._process
        if process is None or process.returncode is not None:
            return
        process.kill()
        await process.wait()
        logger.info("cec-client stopped")
