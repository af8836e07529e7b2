from typing import Literal, Optional

from pydantic import PrivateAttr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gpsmap import constants
from gpsmap.location.models import AccuracyMode, UpdateConfig
from gpsmap.logging import GPSMAP_LOGGER
from gpsmap.settings.config_manager import ConfigManager


class GpsMapSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GPSMAP_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Where fixes come from: a gpsd receiver or the built-in simulator
    location_source: Literal["gpsd", "simulated"] = "gpsd"

    update_interval_seconds: float = constants.DEFAULT_UPDATE_INTERVAL_SECONDS
    fast_update_interval_seconds: float = constants.FAST_UPDATE_INTERVAL_SECONDS
    high_accuracy: bool = False
    last_known_timeout_seconds: float = constants.LAST_KNOWN_TIMEOUT_SECONDS

    geocoding_enabled: bool = True
    nominatim_url: str = constants.NOMINATIM_REVERSE_URL
    geocoder_user_agent: str = constants.GEOCODER_USER_AGENT

    # Remembered answer to the location permission prompt
    location_permission_granted: bool = False

    simulated_latitude: float = constants.SIMULATED_START_LATITUDE
    simulated_longitude: float = constants.SIMULATED_START_LONGITUDE

    web_host: str = constants.DEFAULT_WEB_HOST
    web_port: int = constants.DEFAULT_WEB_PORT
    log_level: str = "INFO"

    _config_manager: Optional[ConfigManager] = PrivateAttr(default=None)

    def __init__(
        self,
        log_level: Optional[str] = None,
        web_port: Optional[int] = None,
        config_manager: Optional[ConfigManager] = None,
        **kwargs,
    ):
        manager = config_manager or ConfigManager()
        # Explicit arguments win over the config file
        values = {**manager.load_config(), **kwargs}
        if log_level is not None:
            values["log_level"] = log_level
        if web_port is not None:
            values["web_port"] = web_port
        super().__init__(**values)
        self._config_manager = manager

    @model_validator(mode="after")
    def _check_intervals(self):
        if self.update_interval_seconds <= 0 or self.fast_update_interval_seconds <= 0:
            raise ValueError("update intervals must be positive")
        if self.fast_update_interval_seconds > self.update_interval_seconds:
            raise ValueError(
                f"fast_update_interval_seconds ({self.fast_update_interval_seconds}) must not exceed "
                f"update_interval_seconds ({self.update_interval_seconds})"
            )
        return self

    @property
    def config_manager(self) -> ConfigManager:
        return self._config_manager

    def update_config(self) -> UpdateConfig:
        """Build the initial location request configuration."""
        mode = AccuracyMode.HIGH_ACCURACY if self.high_accuracy else AccuracyMode.BALANCED_POWER
        return UpdateConfig(
            interval_seconds=self.update_interval_seconds,
            min_interval_seconds=self.fast_update_interval_seconds,
            accuracy_mode=mode,
        )

    def remember_permission_grant(self) -> None:
        """Persist a granted location permission so the prompt is not repeated."""
        self.location_permission_granted = True
        try:
            self._config_manager.update_config(location_permission_granted=True)
        except IOError as e:
            GPSMAP_LOGGER.warning(f"Could not remember location permission: {e}")
