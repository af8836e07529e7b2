"""Single logical UI thread.

Location callbacks arrive on platform threads; screen updates must not. The
dispatcher runs every submitted callable, in submission order, on one worker
thread.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable

from gpsmap.logging import GPSMAP_LOGGER


class SerialDispatcher:
    def __init__(self, name: str = "gpsmap-ui"):
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)

    def __call__(self, fn: Callable[[], None]) -> Future:
        return self.submit(fn)

    def submit(self, fn: Callable[[], None]) -> Future:
        future = self._executor.submit(fn)
        future.add_done_callback(self._log_failure)
        return future

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    @staticmethod
    def _log_failure(future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            GPSMAP_LOGGER.error(f"UI update failed: {error}", exc_info=error)
