"""Location session and the platform services behind it."""

from gpsmap.location.errors import GeocodingFailed, LocationError, NoLastKnownLocation, PermissionDenied
from gpsmap.location.models import AccuracyMode, LocationSample, SessionState, UpdateConfig
from gpsmap.location.session_controller import LocationSessionController
from gpsmap.location.subscription import LocationSubscription

__all__ = [
    "AccuracyMode",
    "GeocodingFailed",
    "LocationError",
    "LocationSample",
    "LocationSessionController",
    "LocationSubscription",
    "NoLastKnownLocation",
    "PermissionDenied",
    "SessionState",
    "UpdateConfig",
]
