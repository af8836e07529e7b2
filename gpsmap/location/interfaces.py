"""Collaborators the location session talks to.

Implementations live next to the thing they wrap: platform services in
``gpsmap.location``, the presenter and map launcher in ``gpsmap.web``.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future
from enum import Enum
from typing import Optional

from gpsmap.location.models import AccuracyMode, LocationSample, UpdateConfig
from gpsmap.location.subscription import LocationSubscription


class PermissionResult(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"


class PermissionGateway(ABC):
    @abstractmethod
    def has_fine_location_permission(self) -> bool:
        pass

    @abstractmethod
    def request_fine_location_permission(self) -> "Future[PermissionResult]":
        """Ask the user for permission; resolves once they have answered."""
        pass


class PlatformLocationService(ABC):
    @abstractmethod
    def get_last_known_location(self) -> "Future[Optional[LocationSample]]":
        """
        Fetch the most recent cached fix without waiting for a new one.

        The future resolves to None when the platform has no fix yet.
        """
        pass

    @abstractmethod
    def subscribe(self, config: UpdateConfig) -> LocationSubscription:
        """Start continuous updates; batches of samples arrive on the handle."""
        pass

    @abstractmethod
    def unsubscribe(self, handle: LocationSubscription) -> None:
        """Stop updates for ``handle``. No batch is published after this returns."""
        pass

    def close(self) -> None:  # noqa: B027
        """Release platform resources. Optional."""


class ReverseGeocoder(ABC):
    @abstractmethod
    def resolve_address(self, latitude: float, longitude: float) -> Optional[str]:
        """
        Look up a postal address for a coordinate.

        Returns None when there is no address for the point; raises
        GeocodingFailed when the lookup itself fails.
        """
        pass


class UIPresenter(ABC):
    @abstractmethod
    def display_sample(self, sample: LocationSample) -> None:
        pass

    @abstractmethod
    def display_update_state(self, is_active: bool) -> None:
        pass

    @abstractmethod
    def display_accuracy_mode(self, mode: AccuracyMode) -> None:
        pass


class MapLauncher(ABC):
    @abstractmethod
    def open_map(self, latitude: Optional[float], longitude: Optional[float]) -> str:
        """Show the map screen centered on a single point; returns its URL."""
        pass
