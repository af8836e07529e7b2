"""Reverse geocoding (lat/lon -> postal address) for the location screen.

Nominatim (OpenStreetMap) is rate-limited: keep requests infrequent and send a
descriptive User-Agent, per its usage policy.
"""

import threading
from collections import OrderedDict
from typing import Optional

import httpx

from gpsmap import constants
from gpsmap.location.errors import GeocodingFailed
from gpsmap.location.interfaces import ReverseGeocoder
from gpsmap.logging import GPSMAP_LOGGER


def coord_key(latitude: float, longitude: float, precision: int = constants.GEOCODE_CACHE_PRECISION) -> str:
    """Cache key built by rounding coordinates ("lat,lon" with fixed decimals)."""
    return f"{round(latitude, precision):.{precision}f},{round(longitude, precision):.{precision}f}"


class NominatimGeocoder(ReverseGeocoder):
    """Reverse geocoder using the Nominatim ``/reverse`` endpoint."""

    def __init__(
        self,
        url: str = constants.NOMINATIM_REVERSE_URL,
        user_agent: str = constants.GEOCODER_USER_AGENT,
        timeout: float = 5.0,
        cache_size: int = 256,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self.client = client or httpx.Client(
            headers={"User-Agent": user_agent, "Accept-Language": "en"},
            timeout=timeout,
        )
        self.cache_size = cache_size
        self._cache: "OrderedDict[str, Optional[str]]" = OrderedDict()
        self._lock = threading.Lock()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self.client.close()

    def resolve_address(self, latitude: float, longitude: float) -> Optional[str]:
        key = coord_key(latitude, longitude)
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
                return self._cache[key]

        address = self._request(latitude, longitude)

        with self._lock:
            self._cache[key] = address
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)
        return address

    def _request(self, latitude: float, longitude: float) -> Optional[str]:
        params = {"lat": latitude, "lon": longitude, "format": "jsonv2", "zoom": 18}
        try:
            resp = self.client.get(self.url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise GeocodingFailed(f"HTTP {e.response.status_code} from {self.url}") from e
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise GeocodingFailed(f"reverse geocoding request failed: {e}") from e

        if not isinstance(data, dict) or "error" in data:
            return None
        return data.get("display_name") or None


class NullGeocoder(ReverseGeocoder):
    """Used when geocoding is disabled; every address is unknown."""

    def resolve_address(self, latitude: float, longitude: float) -> Optional[str]:
        return None


def describe_address(geocoder: Optional[ReverseGeocoder], latitude: float, longitude: float) -> str:
    """Address text for display; "Not available" when it cannot be resolved."""
    if geocoder is None:
        return constants.NOT_AVAILABLE
    try:
        address = geocoder.resolve_address(latitude, longitude)
    except Exception as e:
        GPSMAP_LOGGER.debug(f"Error happened while geocoding: {e}")
        return constants.NOT_AVAILABLE
    return address or constants.NOT_AVAILABLE
