"""Pydantic models for bridge state, player status and events."""

from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PlaybackState(str, Enum):
    """MPD playback state."""

    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PlaybackState":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.OTHER

    @property
    def is_play_or_pause(self) -> bool:
        return self in (PlaybackState.PLAY, PlaybackState.PAUSE)


def _parse_flag(value: Any) -> bool:
    """MPD reports flags as "0"/"1"."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip() not in ("", "0")


class PlayerStatus(BaseModel):
    """MPD status as returned by the `status` command."""

    state: PlaybackState = PlaybackState.OTHER
    song: Optional[str] = None
    playlistlength: Optional[str] = None
    elapsed: Optional[str] = None
    duration: Optional[str] = None
    repeat: bool = False
    random: bool = False

    model_config = ConfigDict(frozen=True, extra="allow")

    @classmethod
    def from_fields(cls, fields: dict[str, str]) -> "PlayerStatus":
        """Build a status from the raw `key: value` pairs."""
        data: dict[str, Any] = dict(fields)
        data["state"] = PlaybackState.parse(fields.get("state"))
        data["repeat"] = _parse_flag(fields.get("repeat"))
        data["random"] = _parse_flag(fields.get("random"))
        return cls(**data)

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAY


class AppState(BaseModel):
    """Everything the OSD and the remote-control handling depend on."""

    is_device_on: bool = False
    playback_state: PlaybackState = PlaybackState.OTHER
    song: Optional[str] = None
    playlist_length: Optional[str] = None
    elapsed: Optional[str] = None
    duration: Optional[str] = None
    repeat: bool = False
    random: bool = False
    show_playlist: bool = False
    playlists: tuple[str, ...] = ()
    playlist_index: int = 0

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_playlist_index(self) -> "AppState":
        if self.playlists and not 0 <= self.playlist_index < len(self.playlists):
            raise ValueError(
                f"playlist_index {self.playlist_index} out of range "
                f"for {len(self.playlists)} playlists"
            )
        return self

    def replace(self, **changes: Any) -> "AppState":
        """Return a validated copy with `changes` applied."""
        return type(self)(**{**self.model_dump(), **changes})

    @property
    def selected_playlist(self) -> Optional[str]:
        if not self.playlists:
            return None
        return self.playlists[self.playlist_index]


def create_app_state(
    is_device_on: bool,
    status: PlayerStatus,
    playlists: list[str],
) -> AppState:
    """Build the initial application state."""
    return AppState(
        is_device_on=is_device_on,
        playback_state=status.state,
        song=status.song,
        playlist_length=status.playlistlength,
        elapsed=status.elapsed,
        duration=status.duration,
        repeat=status.repeat,
        random=status.random,
        show_playlist=not status.state.is_play_or_pause,
        playlists=tuple(playlists),
        playlist_index=0,
    )


# Decoded bus transmissions


class KeyId(str, Enum):
    """Remote-control keys the receiver forwards over the bus."""

    UP = "up"
    DOWN = "down"
    ENTER = "enter"
    RETURN = "return"
    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"
    NEXT = "next"
    PREVIOUS = "previous"
    BLUE = "blue"
    RED = "red"
    GREEN = "green"
    YELLOW = "yellow"


class PowerStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["power"] = "power"
    is_on: bool


class VolumeStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["volume"] = "volume"
    payload: str


class DisplayNameRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["display_name_request"] = "display_name_request"


class RemoteKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["remote_key"] = "remote_key"
    key: KeyId


class Unrecognized(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["unrecognized"] = "unrecognized"


DecodedCecEvent = Union[PowerStatus, VolumeStatus, DisplayNameRequest, RemoteKey, Unrecognized]


# Events delivered to the orchestrator


class CecEvent(BaseModel):
    """A bus transmission read from cec-client, decoded once on arrival.

    Build it with ``cecmpd.cec.decode_event``.
    """

    model_config = ConfigDict(frozen=True)

    line: str
    decoded: DecodedCecEvent = Field(discriminator="kind")


class PlayerEvent(BaseModel):
    """A player status snapshot taken after an MPD change notification."""

    model_config = ConfigDict(frozen=True)

    status: PlayerStatus


Event = Union[CecEvent, PlayerEvent]
