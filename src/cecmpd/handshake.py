"""Startup power-status handshake with the receiver."""

import logging
from enum import Enum
from typing import Optional

from cecmpd.cec import QUERY_POWER_STATUS
from cecmpd.commands import CommandSink
from cecmpd.models import DecodedCecEvent, DisplayNameRequest, PowerStatus

logger = logging.getLogger(__name__)


class PowerHandshakeState(Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"


class PowerHandshake:
    """Asks for the power status once the receiver has noticed the bridge.

    The receiver probes a new participant with Give OSD Name; that is our cue
    to send ``pow 5``. The first power report after that is the result.
    """

    def __init__(self, effects: CommandSink):
        self.effects = effects
        self.state = PowerHandshakeState.IDLE
        self.result: Optional[bool] = None

    @property
    def done(self) -> bool:
        return self.result is not None

    def __call__(self, decoded: DecodedCecEvent) -> Optional[bool]:
        if self.done:
            return self.result

        if self.state is PowerHandshakeState.IDLE:
            if isinstance(decoded, DisplayNameRequest):
                logger.debug("Receiver asked for our name, querying power status")
                self.effects.cec(QUERY_POWER_STATUS)
                self.state = PowerHandshakeState.AWAITING_RESPONSE
            return None

        if isinstance(decoded, PowerStatus):
            self.result = decoded.is_on
            logger.info("Receiver is %s", "on" if self.result else "in standby")
        return self.result
