"""Shared subscription mechanics for platform location services.

A :class:`PollingLocationService` reads fixes on a background thread per
subscription and publishes them onto the subscription's channel. Subclasses
only say how to read fixes from their source.
"""

import threading
import time
from abc import abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple

from gpsmap.location.interfaces import PlatformLocationService
from gpsmap.location.models import LocationSample, UpdateConfig
from gpsmap.location.subscription import LocationSubscription
from gpsmap.logging import GPSMAP_LOGGER


class PollingLocationService(PlatformLocationService):
    """
    Base class for services that poll a receiver at the configured interval.

    The most recent fix from any read is cached and served as the last-known
    location. Batches are never published more often than the subscription's
    ``min_interval_seconds``.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._last_fix: Optional[LocationSample] = None
        self._workers: Dict[int, Tuple[LocationSubscription, threading.Event, threading.Thread]] = {}
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="last-known")

    @abstractmethod
    def _read_fixes(self, config: UpdateConfig) -> List[LocationSample]:
        """Read whatever fixes are available now, oldest first."""

    def _read_last_known(self) -> Optional[LocationSample]:
        return self.get_cached_fix()

    def get_cached_fix(self) -> Optional[LocationSample]:
        """Most recent fix seen by this service (thread-safe)."""
        with self._lock:
            return self._last_fix

    def _remember(self, sample: LocationSample) -> None:
        with self._lock:
            self._last_fix = sample

    def get_last_known_location(self) -> "Future[Optional[LocationSample]]":
        return self._executor.submit(self._read_last_known)

    def subscribe(self, config: UpdateConfig) -> LocationSubscription:
        handle = LocationSubscription(config)
        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._poll_loop,
            args=(handle, stop_event),
            name=f"{type(self).__name__}-{handle.id}",
            daemon=True,
        )
        with self._lock:
            self._workers[handle.id] = (handle, stop_event, thread)
        thread.start()
        GPSMAP_LOGGER.debug(f"{type(self).__name__}: opened {handle!r}")
        return handle

    def unsubscribe(self, handle: LocationSubscription) -> None:
        with self._lock:
            worker = self._workers.pop(handle.id, None)
        # Closing first makes any publish racing with us a no-op
        handle.close()
        if worker is None:
            return

        _, stop_event, thread = worker
        stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout=5.0)
        GPSMAP_LOGGER.debug(f"{type(self).__name__}: closed {handle!r}")

    def active_subscriptions(self) -> List[LocationSubscription]:
        with self._lock:
            return [handle for handle, _, _ in self._workers.values()]

    def close(self) -> None:
        for handle in self.active_subscriptions():
            self.unsubscribe(handle)
        self._executor.shutdown(wait=False)

    def _poll_loop(self, handle: LocationSubscription, stop_event: threading.Event) -> None:
        """Main polling loop (runs in background thread)."""
        last_published: Optional[float] = None

        # Read immediately, then once per interval
        while not stop_event.is_set():
            last_published = self._poll_once(handle, last_published)
            if stop_event.wait(timeout=handle.config.interval_seconds):
                break

    def _poll_once(self, handle: LocationSubscription, last_published: Optional[float]) -> Optional[float]:
        """Read and publish one batch. Returns the time of the last publish."""
        try:
            fixes = self._read_fixes(handle.config)
        except Exception as e:
            GPSMAP_LOGGER.error(f"Location read failed: {e}", exc_info=True)
            return last_published

        if not fixes:
            GPSMAP_LOGGER.debug("No location fix available")
            return last_published

        self._remember(fixes[-1])

        now = time.monotonic()
        if last_published is not None and now - last_published < handle.config.min_interval_seconds:
            return last_published
        if handle.publish(fixes):
            return now
        return last_published
