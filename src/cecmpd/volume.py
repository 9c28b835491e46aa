"""Open-loop volume convergence.

The bus has no absolute volume command, only ``volup``/``voldown`` half
steps, so reaching a level means counting steps from the last audio status
report. The level is never re-read while stepping.
"""

import logging
import math

from cecmpd.cec import QUERY_VOLUME, VOLUME_DOWN, VOLUME_UP
from cecmpd.commands import CommandSink
from cecmpd.models import DecodedCecEvent, PowerStatus, VolumeStatus

logger = logging.getLogger(__name__)


def current_level(payload: str) -> int:
    """Linear level from an audio status payload (top bit is the mute flag)."""
    mask = 1 << (len(payload) * 4)
    mute_bit = mask // 2
    level_mask = mute_bit - 1
    return int(payload, 16) & level_mask


def is_muted(payload: str) -> bool:
    mute_bit = (1 << (len(payload) * 4)) // 2
    return bool(int(payload, 16) & mute_bit)


def plan_volume_steps(payload: str, target: float) -> list[str]:
    """Commands that move the receiver from the reported level to target."""
    delta = math.floor(target - current_level(payload))
    command = VOLUME_UP if delta > 0 else VOLUME_DOWN
    return [command] * (2 * abs(delta))


def converge_volume(
    effects: CommandSink,
    payload: str,
    target: float,
    step_interval: float,
    delay: float = 0.0,
) -> int:
    """Queue the steps toward target and return how many were queued."""
    steps = plan_volume_steps(payload, target)
    logger.info(
        "Volume %d%s -> %s: %d step(s)",
        current_level(payload),
        " (muted)" if is_muted(payload) else "",
        target,
        len(steps),
    )
    for command in steps:
        effects.cec(command, delay=delay, gap=step_interval)
    return len(steps)


class VolumePreset:
    """Moves the receiver to a preset level each time it wakes up.

    ``request`` asks for an audio status report; the next report seen while
    the request is outstanding drives the convergence. A standby report drops
    the request.
    """

    def __init__(self, effects: CommandSink, target: float, step_interval: float):
        self.effects = effects
        self.target = target
        self.step_interval = step_interval
        self.outstanding = False

    def request(self) -> None:
        self.effects.cec(QUERY_VOLUME)
        self.outstanding = True

    def cancel(self) -> None:
        self.outstanding = False

    def __call__(self, decoded: DecodedCecEvent) -> None:
        if isinstance(decoded, PowerStatus) and not decoded.is_on:
            self.cancel()
            return
        if not self.outstanding or not isinstance(decoded, VolumeStatus):
            return
        self.outstanding = False
        converge_volume(self.effects, decoded.payload, self.target, self.step_interval)
