"""Bridge between an HDMI-CEC AV receiver and MPD."""

from cecmpd.app import Bridge
from cecmpd.models import AppState, PlaybackState, PlayerStatus
from cecmpd.mpd_client import MPDClient
from cecmpd.reducer import AppStateReducer

__all__ = ["AppState", "AppStateReducer", "Bridge", "MPDClient", "PlaybackState", "PlayerStatus"]
