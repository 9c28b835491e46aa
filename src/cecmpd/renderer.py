"""OSD rendering of the application state."""

import logging
from typing import Optional

from cecmpd.effects import Effects
from cecmpd.models import AppState
from cecmpd.reducer import is_app_state_changed

logger = logging.getLogger(__name__)

NO_PLAYLISTS = "No playlists"


def osd_text(state: AppState) -> str:
    """What the receiver should display for a state."""
    if state.show_playlist:
        return state.selected_playlist or NO_PLAYLISTS

    text = state.playback_state.value
    if state.repeat:
        text += " rpt"
    if state.random:
        text += " rnd"
    return text


class AppStateRenderer:
    """Writes the state to the OSD unless it matches the last rendered one."""

    def __init__(self, effects: Effects):
        self.effects = effects
        self.last: Optional[AppState] = None

    def __call__(self, state: AppState) -> bool:
        """Render if the state differs from the last render; return whether it did."""
        if self.last is not None and is_app_state_changed(self.last, state):
            return False
        self.last = state
        self.render(state)
        return True

    def render(self, state: AppState, delay: float = 0.0) -> None:
        """Render unconditionally. Nothing is shown while the receiver is off."""
        if not state.is_device_on:
            return
        text = osd_text(state)
        logger.debug("OSD: %s", text)
        self.effects.prompt(text, delay=delay)
