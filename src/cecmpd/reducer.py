"""The application state fold.

``AppStateReducer`` is applied to every event the bridge receives, in
arrival order: first the initial snapshot, then bus transmissions and player
status snapshots. It always returns a new ``AppState``; commands it decides
to send are handed to the effects object and are not reflected back into the
returned state.
"""

import logging
from typing import Optional, Union

from cecmpd.cec import SET_ACTIVE_SOURCE
from cecmpd.effects import Effects
from cecmpd.models import (
    AppState,
    CecEvent,
    KeyId,
    PlaybackState,
    PlayerEvent,
    PlayerStatus,
    PowerStatus,
    RemoteKey,
)
from cecmpd.mpd_client import quote

logger = logging.getLogger(__name__)

# Keys that are sent to the player as they are
TRANSPORT_KEYS = {
    KeyId.STOP: "stop",
    KeyId.NEXT: "next",
    KeyId.PREVIOUS: "previous",
}

# Keys sent after the settle delay, the player reacts badly while the bus is busy
DELAYED_TRANSPORT_KEYS = {
    KeyId.PLAY: "play",
    KeyId.PAUSE: "pause",
}

REPEAT_KEY = KeyId.RED
RANDOM_KEY = KeyId.GREEN


def on_player_state_change(status: PlayerStatus, state: AppState) -> AppState:
    """Fold a player status snapshot into the state."""
    if status.state.is_play_or_pause:
        show_playlist = False
    elif status.state == PlaybackState.STOP:
        show_playlist = True
    else:
        return state.replace()

    return state.replace(
        playback_state=status.state,
        song=status.song,
        playlist_length=status.playlistlength,
        elapsed=status.elapsed,
        duration=status.duration,
        repeat=status.repeat,
        random=status.random,
        show_playlist=show_playlist,
    )


def is_app_state_changed(current: AppState, next_state: AppState) -> bool:
    """Comparator deciding whether next_state is rendered.

    Returns True when the two states are to be treated as the same, in which
    case the renderer is skipped. Song and timing fields never count.
    """
    if current.is_device_on != next_state.is_device_on:
        return False

    if current.show_playlist != next_state.show_playlist:
        return False

    if current.show_playlist:
        return current.playlist_index == next_state.playlist_index

    return (
        current.playback_state == next_state.playback_state
        and current.repeat == next_state.repeat
        and current.random == next_state.random
    )


class AppStateReducer:
    """Folds bus and player events into the application state."""

    def __init__(self, effects: Effects, settle_delay: float = 0.5):
        self.effects = effects
        self.settle_delay = settle_delay

    def __call__(
        self,
        state: Optional[AppState],
        event: Union[AppState, CecEvent, PlayerEvent],
    ) -> AppState:
        if state is None:
            if not isinstance(event, AppState):
                raise TypeError("the first event must be the initial AppState")
            return event

        if isinstance(event, PlayerEvent):
            return on_player_state_change(event.status, state)

        if isinstance(event, CecEvent):
            decoded = event.decoded
            if isinstance(decoded, PowerStatus):
                return self.on_device_power_change(decoded.is_on, state)
            if isinstance(decoded, RemoteKey):
                return self.on_remote_key_up(decoded.key, state)
            return state.replace()

        raise TypeError(f"unexpected event {event!r}")

    def on_device_power_change(self, is_on: bool, state: AppState) -> AppState:
        if is_on == state.is_device_on:
            return state.replace()

        if is_on:
            logger.info("Receiver turned on")
            return state.replace(
                is_device_on=True,
                show_playlist=not state.playback_state.is_play_or_pause,
            )

        logger.info("Receiver went to standby, pausing playback")
        self.effects.player("pause")
        self.effects.cec(SET_ACTIVE_SOURCE, delay=self.settle_delay)
        self.effects.tv_standby()
        return state.replace(is_device_on=False, show_playlist=True)

    def on_remote_key_up(self, key: KeyId, state: AppState) -> AppState:
        if state.show_playlist:
            return self._on_playlist_key(key, state)
        return self._on_playback_key(key, state)

    def _on_playlist_key(self, key: KeyId, state: AppState) -> AppState:
        count = len(state.playlists)

        if key == KeyId.RETURN:
            if state.playback_state.is_play_or_pause:
                return state.replace(show_playlist=False)
            return state.replace()

        if not count:
            return state.replace()

        if key == KeyId.UP:
            return state.replace(playlist_index=(state.playlist_index - 1) % count)

        if key == KeyId.DOWN:
            return state.replace(playlist_index=(state.playlist_index + 1) % count)

        if key == KeyId.ENTER:
            name = state.playlists[state.playlist_index]
            logger.info("Loading playlist %s", name)
            self.effects.player("clear", f"load {quote(name)}", "play")

        return state.replace()

    def _on_playback_key(self, key: KeyId, state: AppState) -> AppState:
        if key == KeyId.RETURN:
            return state.replace(show_playlist=True)

        if key in DELAYED_TRANSPORT_KEYS:
            self.effects.player(DELAYED_TRANSPORT_KEYS[key], delay=self.settle_delay)
        elif key in TRANSPORT_KEYS:
            self.effects.player(TRANSPORT_KEYS[key])
        elif key == REPEAT_KEY:
            self.effects.player(f"repeat {int(not state.repeat)}", delay=self.settle_delay)
        elif key == RANDOM_KEY:
            self.effects.player(f"random {int(not state.random)}", delay=self.settle_delay)

        return state.replace()
