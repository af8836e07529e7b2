"""Recoverable errors raised by the location session."""


class LocationError(RuntimeError):
    """Base class for location errors. None of these should end the process."""


class PermissionDenied(LocationError):
    """The user has not granted (or has refused) fine location permission."""


class NoLastKnownLocation(LocationError):
    """The platform has no cached fix yet, or the lookup timed out."""


class GeocodingFailed(LocationError):
    """Reverse geocoding could not be performed."""
