"""Exceptions raised by the bridge."""


class MPDError(Exception):
    """MPD answered with something other than OK."""


class TransportClosed(Exception):
    """cec-client or the MPD connection has gone away."""


class PlaylistError(Exception):
    """Playlist directories could not be reconciled."""


class BraviaError(Exception):
    """The TV answered a control request with an error."""
