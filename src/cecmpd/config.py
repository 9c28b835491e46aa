"""Configuration management for the CEC/MPD bridge."""

from typing import Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class OsdConfig(BaseModel):
    """Receiver on-screen display settings."""

    max_length: int = 14


class CecConfig(BaseModel):
    """cec-client process and bus timing settings."""

    binary: str = "cec-client"
    osd_name: str = "Loading..."
    # Minimum spacing between two bus transmissions (seconds)
    command_interval: float = 0.25
    # Delay before commands that would otherwise collide with bus traffic
    settle_delay: float = 0.5


class MPDConfig(BaseModel):
    """MPD connection settings."""

    host: str = "localhost"
    port: int = 6600
    timeout: float = 5.0
    conf_path: str = "/etc/mpd.conf"


class VolumeConfig(BaseModel):
    """Receiver volume settings."""

    # Level to converge to when the receiver wakes up
    preset: Optional[int] = None
    step_interval: float = 0.3


class HandoffConfig(BaseModel):
    """Audio hand-off to the TV. Disabled unless cec_command is set."""

    cec_command: Optional[str] = None
    volume_preset: Optional[int] = None
    delay: float = 1.0
    bravia_profile: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return bool(self.cec_command)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    osd: OsdConfig = OsdConfig()
    cec: CecConfig = CecConfig()
    mpd: MPDConfig = MPDConfig()
    volume: VolumeConfig = VolumeConfig()
    handoff: HandoffConfig = HandoffConfig()

    model_config = {
        "env_prefix": "CECMPD_",
        "env_nested_delimiter": "__",
    }


def load_settings() -> Settings:
    """Load settings from environment variables.

    Environment variable examples:
        CECMPD_MPD__HOST=music.local
        CECMPD_OSD__MAX_LENGTH=16
        CECMPD_HANDOFF__CEC_COMMAND="tx 15:44:34"
    """
    return Settings()


# Default settings instance
settings = load_settings()
