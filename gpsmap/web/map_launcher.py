"""Hands the current position over to the map screen."""

from typing import Optional, Tuple
from urllib.parse import urlencode

from gpsmap import constants
from gpsmap.location.interfaces import MapLauncher
from gpsmap.logging import GPSMAP_LOGGER


class WebMapLauncher(MapLauncher):
    """
    Builds the URL of the map page for a single point.

    The URL is relative so it works from whichever host the browser used to
    reach the location page. The page that asked for it navigates there
    itself. Missing coordinates fall back to 0.0, which is what the map
    screen has always shown when it was opened before the first fix.
    """

    def __init__(self, zoom: float = constants.MAP_ZOOM_LEVEL, title: str = constants.MAP_MARKER_TITLE):
        self.zoom = zoom
        self.title = title
        self.last_handoff: Optional[Tuple[Optional[float], Optional[float]]] = None

    def map_url(self, latitude: Optional[float], longitude: Optional[float]) -> str:
        query = urlencode(
            {
                "latitude": latitude if latitude is not None else 0.0,
                "longitude": longitude if longitude is not None else 0.0,
                "zoom": self.zoom,
                "title": self.title,
            }
        )
        return f"/map?{query}"

    def open_map(self, latitude: Optional[float], longitude: Optional[float]) -> str:
        url = self.map_url(latitude, longitude)
        self.last_handoff = (latitude, longitude)
        if latitude is None or longitude is None:
            GPSMAP_LOGGER.info("Opening map without a location fix")
        else:
            GPSMAP_LOGGER.info(f"Opening map at lat={latitude:.6f}, lon={longitude:.6f}")
        return url
