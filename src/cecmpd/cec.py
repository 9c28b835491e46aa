"""Decoders for cec-client traffic lines and builders for outbound commands.

The receiver is logical address 5, the bridge registers as recorder 1, so
frames addressed to us start with ``51`` and broadcasts with ``5f``.
"""

import re
from typing import Optional, Union

from cecmpd.models import (
    CecEvent,
    DecodedCecEvent,
    DisplayNameRequest,
    KeyId,
    PowerStatus,
    RemoteKey,
    Unrecognized,
    VolumeStatus,
)

Transmission = Union[str, bytes]

QUERY_POWER_STATUS = "pow 5"
QUERY_VOLUME = "tx 15:71"
SET_ACTIVE_SOURCE = "as"
VOLUME_UP = "volup"
VOLUME_DOWN = "voldown"
OSD_PREFIX = "tx 15:47:"

DEFAULT_OSD_MAX_LENGTH = 14


def _rx(hex_bytes: str) -> re.Pattern:
    return re.compile(
        rf"^TRAFFIC:\s*\[\s*(\d+)\s*\]\s*>>\s*{hex_bytes}\s*", re.IGNORECASE
    )


DISPLAY_NAME_REQUEST_RE = _rx("51:46")
DEVICE_IS_ON_RE = _rx("51:90:00")
DEVICE_IS_STANDBY_RE = _rx("51:90:01")
DEVICE_TURN_ON_RE = _rx("5f:72:01")
DEVICE_STANDBY_RE = _rx("5f:72:00")
VOLUME_STATUS_RE = _rx("51:7a:((?:[0-9a-f]{2}:?)+)")

# Checked in order, first match wins
POWER_PATTERNS: tuple[tuple[re.Pattern, bool], ...] = (
    (DEVICE_IS_ON_RE, True),
    (DEVICE_IS_STANDBY_RE, False),
    (DEVICE_TURN_ON_RE, True),
    (DEVICE_STANDBY_RE, False),
)

REMOTE_KEY_CODES: dict[KeyId, str] = {
    KeyId.UP: "02",
    KeyId.DOWN: "01",
    KeyId.ENTER: "00",
    KeyId.RETURN: "0d",
    KeyId.PLAY: "44",
    KeyId.PAUSE: "46",
    KeyId.STOP: "45",
    KeyId.NEXT: "4b",
    KeyId.PREVIOUS: "4c",
    KeyId.BLUE: "71",
    KeyId.RED: "72",
    KeyId.GREEN: "73",
    KeyId.YELLOW: "74",
}

REMOTE_KEY_PATTERNS: tuple[tuple[re.Pattern, KeyId], ...] = tuple(
    (_rx(f"51:8b:{code}"), key) for key, code in REMOTE_KEY_CODES.items()
)


def _text(transmission: Transmission) -> str:
    if isinstance(transmission, bytes):
        return transmission.decode("utf-8", errors="replace")
    return transmission


def decode_power_status(transmission: Transmission) -> Optional[bool]:
    """Return whether the receiver reports itself on, or None."""
    text = _text(transmission)
    for pattern, is_on in POWER_PATTERNS:
        if pattern.search(text):
            return is_on
    return None


def is_display_name_request(transmission: Transmission) -> bool:
    """Whether the receiver is asking the bridge for its OSD name."""
    return DISPLAY_NAME_REQUEST_RE.search(_text(transmission)) is not None


def decode_volume_status(transmission: Transmission) -> Optional[str]:
    """Return the hex payload of an audio status report, or None."""
    match = VOLUME_STATUS_RE.search(_text(transmission))
    if not match:
        return None
    return match.group(2).replace(":", "").lower()


def decode_remote_key(transmission: Transmission) -> Optional[KeyId]:
    text = _text(transmission)
    for pattern, key in REMOTE_KEY_PATTERNS:
        if pattern.search(text):
            return key
    return None


def decode(transmission: Transmission) -> DecodedCecEvent:
    """Map a traffic line to a semantic event. Never raises."""
    is_on = decode_power_status(transmission)
    if is_on is not None:
        return PowerStatus(is_on=is_on)

    payload = decode_volume_status(transmission)
    if payload is not None:
        return VolumeStatus(payload=payload)

    if is_display_name_request(transmission):
        return DisplayNameRequest()

    key = decode_remote_key(transmission)
    if key is not None:
        return RemoteKey(key=key)

    return Unrecognized()


def decode_event(transmission: Transmission) -> CecEvent:
    """Wrap a traffic line and its decoding for the event queue."""
    return CecEvent(line=_text(transmission), decoded=decode(transmission))


def encode_osd_text(text: str, max_length: int = DEFAULT_OSD_MAX_LENGTH) -> str:
    """Hex-encode text for Set OSD String, padded and cut to max_length."""
    fitted = text.ljust(max_length)[:max_length]
    raw = fitted.encode("ascii", errors="replace")
    return ":".join(f"{byte:02x}" for byte in raw)


def osd_command(text: str, max_length: int = DEFAULT_OSD_MAX_LENGTH) -> str:
    return f"{OSD_PREFIX}{encode_osd_text(text, max_length)}"
