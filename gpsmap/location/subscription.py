"""Subscription handle for continuous location updates.

A platform service hands one of these out per ``subscribe()`` call and pushes
batches of samples into it; the session controller drains it on its own
thread. Closing the handle makes further publishes no-ops and wakes any
reader blocked in :meth:`LocationSubscription.get`.
"""

import itertools
import queue
import threading
from typing import List, Optional, Sequence

from gpsmap.location.models import LocationSample, UpdateConfig

_ids = itertools.count(1)
_CLOSED = object()


class LocationSubscription:
    def __init__(self, config: UpdateConfig):
        self.id = next(_ids)
        self.config = config
        self._channel: "queue.Queue" = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def publish(self, samples: Sequence[LocationSample]) -> bool:
        """Queue a batch of samples, in arrival order.

        Returns:
            False if the subscription is closed and the batch was dropped.
        """
        if self._closed.is_set() or not samples:
            return False
        self._channel.put(list(samples))
        return True

    def get(self, timeout: Optional[float] = None) -> Optional[List[LocationSample]]:
        """Wait for the next batch. Returns None on timeout or once closed."""
        if self._closed.is_set():
            return None
        try:
            batch = self._channel.get(timeout=timeout)
        except queue.Empty:
            return None
        if batch is _CLOSED or self._closed.is_set():
            return None
        return batch

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self._channel.put(_CLOSED)

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"LocationSubscription(id={self.id}, {self.config.accuracy_mode.value}, {state})"
