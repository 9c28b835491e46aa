"""Hand the receiver's audio over to the TV.

The hand-off is a small state machine driven by the same events as the
application state:

    IDLE --trigger key--> AWAITING_VOLUME_REPORT
    AWAITING_VOLUME_REPORT --report, player idle--> IDLE (completed)
    AWAITING_VOLUME_REPORT --report, player playing--> AWAITING_PLAYER_PAUSE_CONFIRM
    AWAITING_PLAYER_PAUSE_CONFIRM --player paused/stopped--> IDLE (completed)
    AWAITING_PLAYER_PAUSE_CONFIRM --player playing--> IDLE

A receiver standby report resets it from any stage.
"""

import logging
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from cecmpd.cec import QUERY_VOLUME
from cecmpd.config import HandoffConfig
from cecmpd.effects import Effects
from cecmpd.models import (
    AppState,
    CecEvent,
    KeyId,
    PlaybackState,
    PlayerEvent,
    PowerStatus,
    RemoteKey,
    VolumeStatus,
)
from cecmpd.volume import converge_volume

logger = logging.getLogger(__name__)

PAUSE_PROMPT = "pause"


class HandoffStage(str, Enum):
    IDLE = "idle"
    AWAITING_VOLUME_REPORT = "awaiting_volume_report"
    AWAITING_PLAYER_PAUSE_CONFIRM = "awaiting_player_pause_confirm"


class HandoffState(BaseModel):
    """Hand-off progress.

    An IDLE state whose transition has both labels set is a completed
    hand-off, as opposed to a fresh or aborted one.
    """

    stage: HandoffStage = HandoffStage.IDLE
    volume_status: Optional[str] = None
    transition: tuple[Optional[str], Optional[str]] = (None, None)

    model_config = ConfigDict(frozen=True)

    @property
    def completed(self) -> bool:
        return self.stage == HandoffStage.IDLE and None not in self.transition


class HandoffProtocol:
    """Fold over bus and player events that switches audio to the TV."""

    def __init__(
        self,
        effects: Effects,
        config: HandoffConfig,
        settle_delay: float = 0.5,
        step_interval: float = 0.3,
        trigger_key: KeyId = KeyId.BLUE,
    ):
        self.effects = effects
        self.config = config
        self.settle_delay = settle_delay
        self.step_interval = step_interval
        self.trigger_key = trigger_key
        self.state = HandoffState()

    def __call__(self, event: Union[CecEvent, PlayerEvent], app_state: AppState) -> HandoffState:
        self.state = self.step(self.state, event, app_state)
        return self.state

    def step(
        self,
        state: HandoffState,
        event: Union[CecEvent, PlayerEvent],
        app_state: AppState,
    ) -> HandoffState:
        decoded = event.decoded if isinstance(event, CecEvent) else None
        if isinstance(decoded, PowerStatus) and not decoded.is_on:
            if state.stage != HandoffStage.IDLE:
                logger.info("Receiver went to standby, hand-off abandoned")
            return HandoffState()

        if state.stage == HandoffStage.IDLE:
            return self._on_idle(state, event, app_state)
        if state.stage == HandoffStage.AWAITING_VOLUME_REPORT:
            return self._on_awaiting_volume(state, event, app_state)
        return self._on_awaiting_pause(state, event)

    def _on_idle(
        self, state: HandoffState, event: Union[CecEvent, PlayerEvent], app_state: AppState
    ) -> HandoffState:
        if not self.config.enabled or not isinstance(event, CecEvent):
            return state
        if not app_state.is_device_on:
            return state
        decoded = event.decoded
        if not isinstance(decoded, RemoteKey) or decoded.key != self.trigger_key:
            return state

        logger.info("Hand-off requested, querying receiver volume")
        self.effects.cec(QUERY_VOLUME)
        return HandoffState(stage=HandoffStage.AWAITING_VOLUME_REPORT)

    def _on_awaiting_volume(
        self, state: HandoffState, event: Union[CecEvent, PlayerEvent], app_state: AppState
    ) -> HandoffState:
        if not isinstance(event, CecEvent) or not isinstance(event.decoded, VolumeStatus):
            return state
        payload = event.decoded.payload

        label = app_state.playback_state.value
        if app_state.playback_state == PlaybackState.PLAY:
            logger.info("Pausing the player before the hand-off")
            self.effects.prompt(PAUSE_PROMPT)
            self.effects.player("pause", delay=self.settle_delay)
            return HandoffState(
                stage=HandoffStage.AWAITING_PLAYER_PAUSE_CONFIRM,
                volume_status=payload,
                transition=(label, None),
            )

        self._execute(payload, delay=0.0)
        return HandoffState(volume_status=payload, transition=(label, label))

    def _on_awaiting_pause(
        self, state: HandoffState, event: Union[CecEvent, PlayerEvent]
    ) -> HandoffState:
        if not isinstance(event, PlayerEvent):
            return state

        if event.status.is_playing:
            logger.info("Player resumed, hand-off aborted")
            return HandoffState()

        label = event.status.state.value
        self._execute(state.volume_status or "", delay=self.settle_delay)
        return HandoffState(volume_status=state.volume_status, transition=(label, label))

    def _execute(self, payload: str, delay: float) -> None:
        logger.info("Handing audio over: %s", self.config.cec_command)
        self.effects.cec(self.config.cec_command, delay=delay)
        self.effects.tv_launch(delay=delay)
        if self.config.volume_preset is not None and payload:
            converge_volume(
                self.effects,
                payload,
                self.config.volume_preset,
                self.step_interval,
                delay=delay + self.config.delay,
            )
