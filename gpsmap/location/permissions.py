"""Location permission based on the user's recorded consent."""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from gpsmap.location.interfaces import PermissionGateway, PermissionResult
from gpsmap.logging import GPSMAP_LOGGER

PERMISSION_PROMPT = "Allow gpsmap to access this device's precise location?"


def _resolved(result: PermissionResult) -> "Future[PermissionResult]":
    future: "Future[PermissionResult]" = Future()
    future.set_result(result)
    return future


class ConsentPermissionGateway(PermissionGateway):
    """
    Fine location permission granted by asking the user once.

    The question is asked through ``prompt`` on a worker thread so callers
    get a future back straight away. A grant is reported to ``on_granted``
    (the daemon uses it to remember the answer in the config file).
    """

    def __init__(
        self,
        granted: bool = False,
        prompt: Optional[Callable[[str], bool]] = None,
        on_granted: Optional[Callable[[], None]] = None,
    ):
        self._granted = granted
        self._prompt = prompt
        self._on_granted = on_granted
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="permission-prompt")

    def has_fine_location_permission(self) -> bool:
        return self._granted

    def request_fine_location_permission(self) -> "Future[PermissionResult]":
        if self._granted:
            return _resolved(PermissionResult.GRANTED)
        if self._prompt is None:
            GPSMAP_LOGGER.warning("No way to ask for location permission; treating it as denied")
            return _resolved(PermissionResult.DENIED)
        return self._executor.submit(self._ask)

    def revoke(self) -> None:
        self._granted = False

    def _ask(self) -> PermissionResult:
        if not self._prompt(PERMISSION_PROMPT):
            GPSMAP_LOGGER.info("Location permission denied")
            return PermissionResult.DENIED

        self._granted = True
        GPSMAP_LOGGER.info("Location permission granted")
        if self._on_granted is not None:
            self._on_granted()
        return PermissionResult.GRANTED
