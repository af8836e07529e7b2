"""Simulated receiver for machines without GPS hardware.

Walks randomly around a start point. High accuracy behaves like GPS (tight
accuracy, altitude and speed); balanced power behaves like network
positioning (coarse accuracy, no altitude or speed).
"""

import math
import random
from typing import List, Optional

from gpsmap import constants
from gpsmap.location.models import AccuracyMode, LocationSample, UpdateConfig
from gpsmap.location.platform_service import PollingLocationService

METERS_PER_DEGREE_LATITUDE = 111_320.0


class SimulatedLocationService(PollingLocationService):
    def __init__(
        self,
        latitude: float = constants.SIMULATED_START_LATITUDE,
        longitude: float = constants.SIMULATED_START_LONGITUDE,
        altitude: float = 15.0,
        rng: Optional[random.Random] = None,
    ):
        super().__init__()
        self._latitude = latitude
        self._longitude = longitude
        self._altitude = altitude
        self._rng = rng or random.Random()
        self._heading = self._rng.uniform(0.0, 360.0)

    def seed_last_known(self, sample: LocationSample) -> None:
        """Pretend the platform already holds ``sample`` from an earlier request."""
        self._remember(sample)

    def _read_fixes(self, config: UpdateConfig) -> List[LocationSample]:
        speed = self._walk(config.interval_seconds)

        if config.accuracy_mode is AccuracyMode.HIGH_ACCURACY:
            accuracy = self._rng.uniform(3.0, 8.0)
            altitude: Optional[float] = self._altitude + self._rng.gauss(0.0, 1.5)
            reported_speed: Optional[float] = speed
        else:
            accuracy = self._rng.uniform(20.0, 60.0)
            altitude = None
            reported_speed = None

        # Reported position scatters around the true one by about the accuracy
        error_m = self._rng.gauss(0.0, accuracy / 2)
        bearing = math.radians(self._rng.uniform(0.0, 360.0))
        latitude, longitude = self._offset(self._latitude, self._longitude, error_m, bearing)

        return [
            LocationSample(
                latitude=latitude,
                longitude=longitude,
                accuracy=accuracy,
                altitude=altitude,
                speed=reported_speed,
            )
        ]

    def _walk(self, seconds: float) -> float:
        """Advance the true position by one walking step; returns the speed used."""
        speed = self._rng.uniform(0.5, 1.8)
        self._heading = (self._heading + self._rng.gauss(0.0, 20.0)) % 360.0
        self._latitude, self._longitude = self._offset(
            self._latitude, self._longitude, speed * seconds, math.radians(self._heading)
        )
        return speed

    @staticmethod
    def _offset(latitude: float, longitude: float, distance_m: float, bearing_rad: float):
        dlat = distance_m * math.cos(bearing_rad) / METERS_PER_DEGREE_LATITUDE
        dlon = distance_m * math.sin(bearing_rad) / (
            METERS_PER_DEGREE_LATITUDE * max(math.cos(math.radians(latitude)), 1e-6)
        )
        return latitude + dlat, longitude + dlon
