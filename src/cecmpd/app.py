"""The bridge: owns the application state and runs the event loop."""

import asyncio
import logging
from typing import AsyncIterator, Optional, Union

from cecmpd.bravia import BraviaClient, load_bravia_profile
from cecmpd.cec import decode_event
from cecmpd.cec_client import CecClient
from cecmpd.commands import CommandQueue
from cecmpd.config import Settings
from cecmpd.effects import Effects
from cecmpd.errors import PlaylistError, TransportClosed
from cecmpd.handoff import HandoffProtocol, HandoffStage
from cecmpd.handshake import PowerHandshake
from cecmpd.models import (
    AppState,
    CecEvent,
    DisplayNameRequest,
    Event,
    PlayerEvent,
    create_app_state,
)
from cecmpd.mpd_client import MPDClient
from cecmpd.playlists import update_playlists
from cecmpd.reducer import AppStateReducer
from cecmpd.renderer import AppStateRenderer
from cecmpd.volume import VolumePreset

logger = logging.getLogger(__name__)

QueueItem = Union[Event, BaseException]


class Bridge:
    """Merges cec-client traffic and MPD status changes into one state.

    Producers only put events on ``events``; ``run`` is the single consumer
    and the only writer of ``state``.
    """

    def __init__(
        self,
        settings: Settings,
        cec: Optional[CecClient] = None,
        mpd: Optional[MPDClient] = None,
        bravia: Optional[BraviaClient] = None,
    ):
        self.settings = settings
        self.cec = cec or CecClient(settings.cec.binary, settings.cec.osd_name)
        self.mpd = mpd or MPDClient(
            host=settings.mpd.host,
            port=settings.mpd.port,
            timeout=settings.mpd.timeout,
        )
        if bravia is None and settings.handoff.bravia_profile:
            bravia = BraviaClient(load_bravia_profile(settings.handoff.bravia_profile))
        self.bravia = bravia

        settle_delay = settings.cec.settle_delay
        step_interval = settings.volume.step_interval
        self.commands = CommandQueue(self.cec.write, settings.cec.command_interval)
        self.effects = Effects(self.commands, self.mpd, self.bravia, settings.osd.max_length)
        self.reducer = AppStateReducer(self.effects, settle_delay)
        self.handoff = HandoffProtocol(
            self.effects, settings.handoff, settle_delay, step_interval
        )
        self.renderer = AppStateRenderer(self.effects)
        self.volume_preset: Optional[VolumePreset] = None
        if settings.volume.preset is not None:
            self.volume_preset = VolumePreset(
                self.effects, settings.volume.preset, step_interval
            )

        self.events: asyncio.Queue[QueueItem] = asyncio.Queue()
        self.state: Optional[AppState] = None
        self._producers: list[asyncio.Task] = []

    async def _pump(self, source: AsyncIterator[Event], name: str) -> None:
        """Forward a source to the event queue; its failure ends the bridge."""
        try:
            async for event in source:
                await self.events.put(event)
            raise TransportClosed(f"{name} stream ended")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self.events.put(e)

    async def _cec_events(self) -> AsyncIterator[Event]:
        async for line in self.cec.lines():
            yield decode_event(line)

    async def _player_events(self) -> AsyncIterator[Event]:
        async for status in self.mpd.watch():
            yield PlayerEvent(status=status)

    def _on_worker_done(self, task: asyncio.Task) -> None:
        """A dead command writer ends the bridge like a closed transport."""
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.events.put_nowait(error)

    def _start_producer(self, source: AsyncIterator[Event], name: str) -> None:
        self._producers.append(asyncio.create_task(self._pump(source, name), name=name))

    async def next_event(self) -> Event:
        item = await self.events.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def _await_power_status(self) -> bool:
        handshake = PowerHandshake(self.effects)
        while True:
            event = await self.next_event()
            if isinstance(event, CecEvent) and handshake(event.decoded) is not None:
                return bool(handshake.result)

    async def _load_playlists(self) -> list[str]:
        try:
            return await update_playlists(self.settings.mpd.conf_path)
        except PlaylistError as e:
            logger.error("%s, starting without playlists", e)
            return []

    async def start(self) -> AppState:
        """Spawn cec-client and build the initial state."""
        await self.cec.start()
        self.commands.start().add_done_callback(self._on_worker_done)
        self._start_producer(self._cec_events(), "cec-client")

        playlists_task = asyncio.create_task(self._load_playlists())
        try:
            is_on = await self._await_power_status()
            playlists = await playlists_task
        finally:
            playlists_task.cancel()
        status = await self.mpd.update()

        self.state = self.reducer(None, create_app_state(is_on, status, playlists))
        logger.info(
            "Initial state: receiver %s, player %s, %d playlist(s)",
            "on" if is_on else "standby",
            self.state.playback_state.value,
            len(playlists),
        )
        self.renderer(self.state)
        self._start_producer(self._player_events(), "mpd")
        return self.state

    def process(self, event: Event) -> AppState:
        """Apply one event to every fold and render the result."""
        if self.state is None:
            raise RuntimeError("bridge has not been started")

        previous = self.state
        self.state = self.reducer(previous, event)
        handoff_stage = self.handoff.state.stage
        self.handoff(event, self.state)

        if isinstance(event, CecEvent):
            if self.volume_preset is not None:
                self._update_volume_preset(previous, handoff_stage, event)
            if isinstance(event.decoded, DisplayNameRequest):
                # The receiver wipes its OSD when it probes us
                self.renderer.render(self.state, delay=self.settings.cec.settle_delay)

        self.renderer(self.state)
        return self.state

    def _update_volume_preset(
        self, previous: AppState, handoff_stage: HandoffStage, event: CecEvent
    ) -> None:
        if self.handoff.state.stage != HandoffStage.IDLE:
            # The pending volume report belongs to the hand-off
            self.volume_preset.cancel()
        elif handoff_stage != HandoffStage.IDLE:
            return
        elif self.state.is_device_on and not previous.is_device_on:
            self.volume_preset.request()
        else:
            self.volume_preset(event.decoded)

    async def run(self) -> None:
        """Run until a transport ends or the task is cancelled."""
        try:
            await self.start()
            while True:
                self.process(await self.next_event())
        finally:
            await self.close()

    async def close(self) -> None:
        for task in self._producers:
            task.cancel()
        await asyncio.gather(*self._producers, return_exceptions=True)
        self._producers.clear()
        await self.commands.stop()
        await self.effects.close()
        await self.cec.close()
        if self.bravia is not None:
            await self.bravia.close()
