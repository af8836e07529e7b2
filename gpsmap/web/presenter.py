"""Location screen state for the web UI."""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from gpsmap import constants
from gpsmap.location.geocoding import describe_address
from gpsmap.location.interfaces import ReverseGeocoder, UIPresenter
from gpsmap.location.models import AccuracyMode, LocationSample


class LocationScreen(BaseModel):
    """Display text of the location screen."""

    latitude: str = constants.NOT_AVAILABLE
    longitude: str = constants.NOT_AVAILABLE
    accuracy: str = constants.NOT_AVAILABLE
    altitude: str = constants.NOT_AVAILABLE
    speed: str = constants.NOT_AVAILABLE
    address: str = constants.NOT_AVAILABLE
    updates_active: bool = False
    updates_text: str = constants.UPDATES_OFF_TEXT
    accuracy_mode: str = AccuracyMode.BALANCED_POWER.value
    accuracy_text: str = constants.BALANCED_POWER_TEXT
    last_update: str = ""


class WebPresenter(UIPresenter):
    """
    Presenter that keeps a :class:`LocationScreen` and pushes it to browsers.

    Address lookups run on their own worker so a slow geocoder never holds up
    the next sample; a lookup that finishes after a newer sample arrived is
    thrown away.
    """

    def __init__(
        self,
        geocoder: Optional[ReverseGeocoder] = None,
        accuracy_mode: AccuracyMode = AccuracyMode.BALANCED_POWER,
    ):
        self.geocoder = geocoder
        self.web_app = None
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._lock = threading.Lock()
        self._screen = LocationScreen()
        self._latest_sample: Optional[LocationSample] = None
        self._geocode_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="geocoder")
        self._apply_accuracy_mode(AccuracyMode(accuracy_mode))

    def attach(self, web_app, loop: asyncio.AbstractEventLoop) -> None:
        """Broadcast screen changes through ``web_app`` on ``loop``."""
        self.web_app = web_app
        self.loop = loop

    def snapshot(self) -> LocationScreen:
        with self._lock:
            return self._screen.model_copy()

    def display_sample(self, sample: LocationSample) -> None:
        with self._lock:
            self._latest_sample = sample
            self._screen.latitude = str(sample.latitude)
            self._screen.longitude = str(sample.longitude)
            self._screen.accuracy = str(sample.accuracy)
            # Not all receivers report altitude or speed
            self._screen.altitude = str(sample.altitude) if sample.has_altitude else constants.NOT_AVAILABLE
            self._screen.speed = str(sample.speed) if sample.has_speed else constants.NOT_AVAILABLE
            # Cleared until the lookup for this sample finishes
            self._screen.address = constants.NOT_AVAILABLE
            self._screen.last_update = datetime.now().isoformat()
        self._broadcast()

        if self.geocoder is None:
            return
        self._geocode_executor.submit(self._resolve_address, sample)

    def display_update_state(self, is_active: bool) -> None:
        with self._lock:
            self._screen.updates_active = is_active
            self._screen.updates_text = constants.UPDATES_ON_TEXT if is_active else constants.UPDATES_OFF_TEXT
        self._broadcast()

    def display_accuracy_mode(self, mode: AccuracyMode) -> None:
        self._apply_accuracy_mode(AccuracyMode(mode))
        self._broadcast()

    def close(self) -> None:
        self._geocode_executor.shutdown(wait=False)

    def _apply_accuracy_mode(self, mode: AccuracyMode) -> None:
        with self._lock:
            self._screen.accuracy_mode = mode.value
            self._screen.accuracy_text = mode.label

    def _resolve_address(self, sample: LocationSample) -> None:
        address = describe_address(self.geocoder, sample.latitude, sample.longitude)
        with self._lock:
            if self._latest_sample is not sample:
                return
            self._screen.address = address
        self._broadcast()

    def _broadcast(self) -> None:
        if self.web_app is None or self.loop is None or not self.loop.is_running():
            return
        asyncio.run_coroutine_threadsafe(self.web_app.broadcast_screen(self.snapshot()), self.loop)
