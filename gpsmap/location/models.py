"""Value types shared by the location session and its collaborators."""

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from gpsmap import constants


class AccuracyMode(str, Enum):
    """Trade-off between positioning accuracy and power use."""

    HIGH_ACCURACY = "high_accuracy"
    BALANCED_POWER = "balanced_power"

    @property
    def label(self) -> str:
        if self is AccuracyMode.HIGH_ACCURACY:
            return constants.HIGH_ACCURACY_TEXT
        return constants.BALANCED_POWER_TEXT


class SessionState(str, Enum):
    IDLE = "idle"
    UPDATES_ACTIVE = "updates_active"


@dataclass(frozen=True)
class LocationSample:
    """A single fix reported by the platform location service."""

    latitude: float  # degrees
    longitude: float  # degrees
    accuracy: float = 0.0  # meters
    altitude: Optional[float] = None  # meters, only when device-reported
    speed: Optional[float] = None  # m/s, only when device-reported
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        if self.accuracy < 0:
            raise ValueError(f"accuracy must be >= 0, got {self.accuracy}")

    @property
    def has_altitude(self) -> bool:
        return self.altitude is not None

    @property
    def has_speed(self) -> bool:
        return self.speed is not None

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "altitude": self.altitude,
            "speed": self.speed,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class UpdateConfig:
    """
    Location request settings for continuous updates.

    Fixes are requested every ``interval_seconds`` and never delivered more
    often than ``min_interval_seconds``. A minimum interval larger than the
    base interval is rejected rather than silently clamped.
    """

    interval_seconds: float = constants.DEFAULT_UPDATE_INTERVAL_SECONDS
    min_interval_seconds: float = constants.FAST_UPDATE_INTERVAL_SECONDS
    accuracy_mode: AccuracyMode = AccuracyMode.BALANCED_POWER

    def __post_init__(self):
        if self.interval_seconds <= 0 or self.min_interval_seconds <= 0:
            raise ValueError("update intervals must be positive")
        if self.min_interval_seconds > self.interval_seconds:
            raise ValueError(
                f"min_interval_seconds ({self.min_interval_seconds}) must not exceed "
                f"interval_seconds ({self.interval_seconds})"
            )
        # Accept plain strings coming from JSON or the web API
        object.__setattr__(self, "accuracy_mode", AccuracyMode(self.accuracy_mode))

    def with_accuracy_mode(self, mode: AccuracyMode) -> "UpdateConfig":
        """Return a copy of this config using ``mode``; intervals are kept."""
        return replace(self, accuracy_mode=AccuracyMode(mode))

    def to_dict(self) -> dict:
        return {
            "interval_seconds": self.interval_seconds,
            "min_interval_seconds": self.min_interval_seconds,
            "accuracy_mode": self.accuracy_mode.value,
            "accuracy_label": self.accuracy_mode.label,
        }
