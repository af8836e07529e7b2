"""Location session: accuracy mode, continuous updates and the last known fix.

The controller is the only owner of the update configuration and the session
state. Everything it talks to (the platform location service, the permission
prompt, the screen) is passed in at construction.

State machine::

    IDLE --start_updates()--> UPDATES_ACTIVE --stop_updates()--> IDLE

``set_accuracy_mode`` is allowed in either state and never changes it. A mode
change while updates are active only applies after updates are restarted.
"""

import threading
from concurrent.futures import TimeoutError as FutureTimeoutError
from functools import partial
from typing import Callable, Iterable, Optional, Tuple

from gpsmap import constants
from gpsmap.location.errors import NoLastKnownLocation, PermissionDenied
from gpsmap.location.interfaces import PermissionGateway, PlatformLocationService, UIPresenter
from gpsmap.location.models import AccuracyMode, LocationSample, SessionState, UpdateConfig
from gpsmap.location.subscription import LocationSubscription
from gpsmap.logging import GPSMAP_LOGGER

UIDispatcher = Callable[[Callable[[], None]], object]


def _run_inline(fn: Callable[[], None]) -> None:
    fn()


class LocationSessionController:
    """
    Owns the location request configuration and the on/off state of updates.

    Continuous updates arrive as batches on a :class:`LocationSubscription`;
    a pump thread per subscription hands them to :meth:`on_location_result`.
    Each subscription gets a generation number, and anything tagged with an
    old generation (a batch still in the channel, a UI notification still
    queued on the UI thread) is dropped once :meth:`stop_updates` returns.
    """

    # How long the pump blocks on the channel before re-checking for shutdown
    PUMP_POLL_SECONDS = 0.5

    def __init__(
        self,
        location_service: PlatformLocationService,
        permission_gateway: PermissionGateway,
        presenter: UIPresenter,
        config: Optional[UpdateConfig] = None,
        ui_dispatcher: Optional[UIDispatcher] = None,
        last_known_timeout_seconds: float = constants.LAST_KNOWN_TIMEOUT_SECONDS,
    ):
        """
        Initialize the controller in the IDLE state.

        Args:
            location_service: Source of last-known fixes and update subscriptions
            permission_gateway: Tells whether fine location permission is granted
            presenter: Screen that displays samples, update state and accuracy mode
            config: Initial update configuration (defaults: 5 s / 2 s, balanced power)
            ui_dispatcher: Runs a callable on the UI thread; defaults to calling it inline
            last_known_timeout_seconds: Upper bound on waiting for a last-known fix
        """
        self.location_service = location_service
        self.permission_gateway = permission_gateway
        self.presenter = presenter
        self.last_known_timeout_seconds = last_known_timeout_seconds
        self._dispatch = ui_dispatcher or _run_inline

        self._lock = threading.RLock()
        self._config = config or UpdateConfig()
        self._state = SessionState.IDLE
        self._last_sample: Optional[LocationSample] = None
        self._subscription: Optional[LocationSubscription] = None
        self._pump: Optional[threading.Thread] = None
        self._generation = 0

    @property
    def config(self) -> UpdateConfig:
        with self._lock:
            return self._config

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.UPDATES_ACTIVE

    @property
    def last_sample(self) -> Optional[LocationSample]:
        with self._lock:
            return self._last_sample

    def set_accuracy_mode(self, mode: AccuracyMode) -> UpdateConfig:
        """
        Replace the config with one using ``mode``.

        Does not touch the subscription; restart updates for the new mode to
        take effect while they are running.

        Returns:
            The new config, for display.
        """
        mode = AccuracyMode(mode)
        with self._lock:
            self._config = self._config.with_accuracy_mode(mode)
            config = self._config
            active = self._state is SessionState.UPDATES_ACTIVE

        if active:
            GPSMAP_LOGGER.info(f"Accuracy mode set to '{mode.label}'; restart updates to apply it")
        else:
            GPSMAP_LOGGER.info(f"Accuracy mode set to '{mode.label}'")
        self._dispatch(partial(self.presenter.display_accuracy_mode, mode))
        return config

    def start_updates(self) -> None:
        """
        Subscribe to continuous updates with the current config.

        Also fetches the last known fix once so the screen is not stale until
        the first periodic fix. Calling this while already active does nothing:
        the existing subscription is kept and no refresh is made.

        Raises:
            PermissionDenied: Fine location permission has not been granted.
        """
        if not self.permission_gateway.has_fine_location_permission():
            raise PermissionDenied("Fine location permission has not been granted")

        with self._lock:
            if self._state is SessionState.UPDATES_ACTIVE:
                GPSMAP_LOGGER.debug("Location updates already active, keeping current subscription")
                return

            handle = self.location_service.subscribe(self._config)
            self._generation += 1
            self._subscription = handle
            self._state = SessionState.UPDATES_ACTIVE
            self._pump = threading.Thread(
                target=self._pump_loop,
                args=(handle, self._generation),
                name=f"location-updates-{handle.id}",
                daemon=True,
            )
            self._pump.start()
            config = self._config

        GPSMAP_LOGGER.info(
            f"Location updates on ({config.accuracy_mode.label}, every {config.interval_seconds:g}s, "
            f"at most every {config.min_interval_seconds:g}s)"
        )
        self._dispatch(partial(self.presenter.display_update_state, True))

        try:
            self.refresh_last_known()
        except NoLastKnownLocation as e:
            GPSMAP_LOGGER.info(f"Waiting for first fix: {e}")

    def stop_updates(self) -> None:
        """Unsubscribe from continuous updates. Does nothing while idle."""
        with self._lock:
            if self._state is SessionState.IDLE:
                return
            handle, pump = self._subscription, self._pump
            self._subscription = None
            self._pump = None
            self._state = SessionState.IDLE
            # Invalidates batches and UI notifications from the old subscription
            self._generation += 1

        try:
            self.location_service.unsubscribe(handle)
        finally:
            handle.close()
        if pump is not None and pump is not threading.current_thread():
            pump.join(timeout=2.0)

        GPSMAP_LOGGER.info("Location updates off")
        self._dispatch(partial(self.presenter.display_update_state, False))

    def refresh_last_known(self) -> LocationSample:
        """
        Fetch the platform's cached fix once and show it.

        Returns:
            The sample now held as the last sample.

        Raises:
            PermissionDenied: Fine location permission has not been granted.
            NoLastKnownLocation: No cached fix, lookup failure or timeout. The
                previously held sample is left as it was.
        """
        if not self.permission_gateway.has_fine_location_permission():
            raise PermissionDenied("Fine location permission has not been granted")

        future = self.location_service.get_last_known_location()
        try:
            sample = future.result(timeout=self.last_known_timeout_seconds)
        except FutureTimeoutError as e:
            future.cancel()
            raise NoLastKnownLocation(
                f"no last known location within {self.last_known_timeout_seconds:g}s"
            ) from e
        except Exception as e:
            GPSMAP_LOGGER.warning(f"Last known location lookup failed: {e}")
            raise NoLastKnownLocation(f"last known location lookup failed: {e}") from e

        if sample is None:
            raise NoLastKnownLocation("no last known location available")

        with self._lock:
            self._last_sample = sample
        GPSMAP_LOGGER.debug(f"Last known location: lat={sample.latitude:.6f}, lon={sample.longitude:.6f}")
        self._dispatch(partial(self.presenter.display_sample, sample))
        return sample

    def on_location_result(self, samples: Iterable[LocationSample]) -> None:
        """
        Handle a batch of fixes from the continuous subscription.

        Samples are processed in arrival order. Every one is sent to the
        screen, and the last one is kept; earlier ones in the batch are simply
        overwritten. Batches arriving while idle are discarded.
        """
        with self._lock:
            if self._state is not SessionState.UPDATES_ACTIVE:
                GPSMAP_LOGGER.debug("Discarding location result received while updates are off")
                return
            generation = self._generation
        self._deliver(generation, samples)

    def current_map_handoff(self) -> Optional[Tuple[float, float]]:
        """Coordinates for the map screen, or None before the first fix."""
        with self._lock:
            if self._last_sample is None:
                return None
            return (self._last_sample.latitude, self._last_sample.longitude)

    def _pump_loop(self, handle: LocationSubscription, generation: int) -> None:
        """Drain one subscription's channel (runs in background thread)."""
        while not handle.closed:
            batch = handle.get(timeout=self.PUMP_POLL_SECONDS)
            if batch is None:
                continue
            try:
                self._deliver(generation, batch)
            except Exception as e:
                GPSMAP_LOGGER.error(f"Failed to handle location update: {e}", exc_info=True)

    def _deliver(self, generation: int, samples: Iterable[LocationSample]) -> None:
        with self._lock:
            if generation != self._generation or self._state is not SessionState.UPDATES_ACTIVE:
                GPSMAP_LOGGER.debug("Discarding location result from a stopped subscription")
                return
            for sample in samples:
                self._last_sample = sample
                self._dispatch(partial(self._display_if_current, generation, sample))

    def _display_if_current(self, generation: int, sample: LocationSample) -> None:
        # Runs on the UI thread, possibly after stop_updates() was called
        with self._lock:
            if generation != self._generation:
                return
            self.presenter.display_sample(sample)
