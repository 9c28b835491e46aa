"""Sony BRAVIA IP control client used as the hand-off target.

Requests are JSON-RPC style POSTs to ``/sony/<service>`` authenticated with
the TV's pre-shared key. Everything the hand-off calls is best-effort: errors
are logged and swallowed.
"""

import itertools
import json
import logging
from pathlib import Path
from typing import Any, Optional

import aiohttp
from pydantic import BaseModel, ConfigDict, Field

from cecmpd.errors import BraviaError

logger = logging.getLogger(__name__)


class BraviaProfile(BaseModel):
    """Connection details for the TV, as stored in the profile file."""

    hostname: str
    pre_shared_key: str = Field(alias="preSharedKey")
    app_title: Optional[str] = Field(default=None, alias="appTitle")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class BraviaApp(BaseModel):
    title: str
    uri: str
    icon: Optional[str] = None


def load_bravia_profile(path: str) -> BraviaProfile:
    """Read a profile from a JSON file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return BraviaProfile.model_validate(data)


class BraviaClient:
    """Async client for the BRAVIA REST API."""

    def __init__(
        self,
        profile: BraviaProfile,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 5.0,
    ):
        self.profile = profile
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._ids = itertools.count(1)

    @property
    def base_url(self) -> str:
        return f"http://{self.profile.hostname}/sony"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def _call(
        self,
        service: str,
        method: str,
        params: Optional[list[dict[str, Any]]] = None,
        version: str = "1.0",
    ) -> list[Any]:
        """POST one request and return its `result` list."""
        request_id = next(self._ids)
        payload = {
            "method": method,
            "params": params or [],
            "id": request_id,
            "version": version,
        }
        async with self._get_session().post(
            f"{self.base_url}/{service}",
            json=payload,
            headers={"X-Auth-PSK": self.profile.pre_shared_key},
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as resp:
            body = await resp.json(content_type=None)
        if body.get("error"):
            raise BraviaError(f"{method}: {body['error']}")
        return body.get("result") or []

    async def set_power(self, on: bool) -> None:
        await self._call("system", "setPowerStatus", [{"status": on}])

    async def get_applications(self) -> list[BraviaApp]:
        result = await self._call("appControl", "getApplicationList")
        apps = result[0] if result else []
        return [BraviaApp.model_validate(app) for app in apps]

    async def launch_app(self, title: str) -> None:
        apps = await self.get_applications()
        for app in apps:
            if app.title.lower() == title.lower():
                await self._call("appControl", "setActiveApp", [{"uri": app.uri}])
                return
        raise BraviaError(f"No application titled {title!r}")

    async def wake_and_launch(self) -> None:
        """Turn the TV on and open the profile's app, ignoring failures."""
        try:
            await self.set_power(True)
            logger.info("BRAVIA %s powered on", self.profile.hostname)
            if self.profile.app_title:
                await self.launch_app(self.profile.app_title)
                logger.info("BRAVIA launched %s", self.profile.app_title)
        except Exception as e:
            logger.warning("BRAVIA %s unreachable (wake): %s", self.profile.hostname, e)

    async def standby(self) -> None:
        try:
            await self.set_power(False)
            logger.info("BRAVIA %s sent to standby", self.profile.hostname)
        except Exception as e:
            logger.warning("BRAVIA %s unreachable (standby): %s", self.profile.hostname, e)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
