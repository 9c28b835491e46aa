"""Shared fixtures and fakes."""

from typing import Optional

import pytest

from cecmpd.cec import decode_event
from cecmpd.models import AppState, CecEvent, PlaybackState


def traffic(frame: str, seq: int = 41237) -> str:
    """A cec-client traffic line carrying frame."""
    return f"TRAFFIC: [{seq:>8}]\t>> {frame}"


def bus_event(frame: str) -> CecEvent:
    """The decoded event for a traffic line carrying frame."""
    return decode_event(traffic(frame))


class FakeClock:
    """Manual clock whose sleep just advances time."""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += seconds


class RecordingEffects:
    """Stands in for Effects and records every request."""

    def __init__(self, tv_enabled: bool = False):
        self.tv_enabled = tv_enabled
        self.cec_commands: list[tuple[str, float, Optional[float]]] = []
        self.player_commands: list[tuple[tuple[str, ...], float]] = []
        self.prompts: list[tuple[str, float]] = []
        self.tv_launches: list[float] = []
        self.tv_standbys = 0

    def cec(self, command: str, delay: float = 0.0, gap: Optional[float] = None) -> None:
        self.cec_commands.append((command, delay, gap))

    def prompt(self, text: str, delay: float = 0.0) -> None:
        self.prompts.append((text, delay))

    def player(self, *commands: str, delay: float = 0.0) -> None:
        self.player_commands.append((commands, delay))

    def tv_launch(self, delay: float = 0.0) -> None:
        if self.tv_enabled:
            self.tv_launches.append(delay)

    def tv_standby(self) -> None:
        if self.tv_enabled:
            self.tv_standbys += 1

    @property
    def sent(self) -> list[str]:
        return [command for command, _, _ in self.cec_commands]


@pytest.fixture
def effects():
    return RecordingEffects()


@pytest.fixture
def playing_state():
    return AppState(
        is_device_on=True,
        playback_state=PlaybackState.PLAY,
        song="3",
        playlist_length="12",
        elapsed="61.204",
        duration="243.100",
        show_playlist=False,
        playlists=("Ambient", "Jazz", "Rock"),
        playlist_index=0,
    )


@pytest.fixture
def browsing_state():
    return AppState(
        is_device_on=True,
        playback_state=PlaybackState.STOP,
        show_playlist=True,
        playlists=("A", "B", "C"),
        playlist_index=0,
    )
