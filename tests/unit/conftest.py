"""Fakes for the location session's collaborators."""

import threading
from concurrent.futures import Future

import pytest

from gpsmap.location.interfaces import PermissionGateway, PermissionResult, PlatformLocationService, UIPresenter
from gpsmap.location.session_controller import LocationSessionController
from gpsmap.location.subscription import LocationSubscription
from gpsmap.settings.config_manager import ConfigManager


class FakeLocationService(PlatformLocationService):
    def __init__(self):
        self.last_known = None
        self.last_known_error = None
        self.hang = False
        self.last_known_calls = 0
        self.subscriptions = []
        self.unsubscribed = []

    def get_last_known_location(self):
        self.last_known_calls += 1
        future = Future()
        if self.hang:
            return future
        if self.last_known_error is not None:
            future.set_exception(self.last_known_error)
        else:
            future.set_result(self.last_known)
        return future

    def subscribe(self, config):
        handle = LocationSubscription(config)
        self.subscriptions.append(handle)
        return handle

    def unsubscribe(self, handle):
        self.unsubscribed.append(handle)
        handle.close()

    @property
    def open_subscriptions(self):
        return [handle for handle in self.subscriptions if not handle.closed]


class FakePermissionGateway(PermissionGateway):
    def __init__(self, granted=True):
        self.granted = granted
        self.requests = 0

    def has_fine_location_permission(self):
        return self.granted

    def request_fine_location_permission(self):
        self.requests += 1
        future = Future()
        future.set_result(PermissionResult.GRANTED if self.granted else PermissionResult.DENIED)
        return future


class RecordingPresenter(UIPresenter):
    def __init__(self):
        self.samples = []
        self.update_states = []
        self.accuracy_modes = []
        self.sample_received = threading.Event()

    def display_sample(self, sample):
        self.samples.append(sample)
        self.sample_received.set()

    def display_update_state(self, is_active):
        self.update_states.append(is_active)

    def display_accuracy_mode(self, mode):
        self.accuracy_modes.append(mode)


@pytest.fixture
def location_service():
    return FakeLocationService()


@pytest.fixture
def permissions():
    return FakePermissionGateway(granted=True)


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def controller(location_service, permissions, presenter):
    ctrl = LocationSessionController(
        location_service,
        permissions,
        presenter,
        last_known_timeout_seconds=0.2,
    )
    yield ctrl
    ctrl.stop_updates()


@pytest.fixture
def config_manager(tmp_path):
    """ConfigManager pointed at a temp directory."""
    mgr = ConfigManager()
    mgr.config_dir = tmp_path
    mgr.config_file = tmp_path / "config.json"
    return mgr
