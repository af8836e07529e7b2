"""Unit tests for the FastAPI web application."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from gpsmap import __version__
from gpsmap.location.models import LocationSample
from gpsmap.location.session_controller import LocationSessionController
from gpsmap.logging.web_log_handler import WebLogHandler
from gpsmap.web.app import ConnectionManager, GpsMapWebApp
from gpsmap.web.map_launcher import WebMapLauncher
from gpsmap.web.presenter import WebPresenter

HELSINKI = LocationSample(latitude=60.1699, longitude=24.9384, accuracy=5.0)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_settings():
    s = MagicMock()
    s.location_source = "simulated"
    s.update_interval_seconds = 5.0
    s.fast_update_interval_seconds = 2.0
    s.high_accuracy = False
    s.geocoding_enabled = False
    s.log_level = "INFO"
    s.config_manager.get_config_path.return_value = "/tmp/gpsmap/config.json"
    return s


@pytest.fixture
def web_presenter():
    p = WebPresenter()
    yield p
    p.close()


@pytest.fixture
def daemon(location_service, permissions, web_presenter, mock_settings):
    ctrl = LocationSessionController(location_service, permissions, web_presenter, last_known_timeout_seconds=0.2)
    d = SimpleNamespace(
        settings=mock_settings,
        controller=ctrl,
        presenter=web_presenter,
        map_launcher=WebMapLauncher(),
    )
    yield d
    ctrl.stop_updates()


@pytest.fixture
def web_app(daemon):
    return GpsMapWebApp(daemon=daemon, web_log_handler=WebLogHandler(max_logs=10))


@pytest.fixture
def client(web_app):
    return TestClient(web_app.app)


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


def test_location_page(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert "text/html" in resp.headers["content-type"]


def test_map_page(client):
    resp = client.get("/map", params={"latitude": 1.0, "longitude": 2.0})
    assert resp.status_code == 200
    assert "leaflet" in resp.text.lower()


def test_map_page_fills_in_defaults(client):
    text = client.get("/map").text
    assert "{{" not in text
    assert "|| 14.0;" in text
    assert "\"User's current location\"" in text


def test_missing_template_is_500(client, tmp_path):
    with patch("gpsmap.web.app.TEMPLATES_DIR", tmp_path):
        resp = client.get("/")
    assert resp.status_code == 500
    assert "Template file not found" in resp.text


def test_no_static_mount(web_app):
    assert all(getattr(route, "path", "") != "/static" for route in web_app.app.routes)


def test_version(client):
    assert client.get("/api/version").json() == {"version": __version__}


# ---------------------------------------------------------------------------
# Status and config
# ---------------------------------------------------------------------------


def test_status_idle(client):
    data = client.get("/api/status").json()

    assert data["state"] == "idle"
    assert data["has_location"] is False
    assert data["permission_granted"] is True
    assert data["config"]["interval_seconds"] == 5.0
    assert data["config"]["accuracy_mode"] == "balanced_power"
    assert data["screen"]["latitude"] == "Not available"


def test_status_without_daemon():
    client = TestClient(GpsMapWebApp().app)
    assert client.get("/api/status").status_code == 503


def test_config(client):
    data = client.get("/api/config").json()
    assert data["location_source"] == "simulated"
    assert data["config_path"] == "/tmp/gpsmap/config.json"


def test_config_without_settings():
    client = TestClient(GpsMapWebApp(daemon=SimpleNamespace(settings=None)).app)
    assert client.get("/api/config").status_code == 503


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


def test_start_and_stop_updates(client, location_service):
    resp = client.post("/api/updates", json={"enabled": True})
    assert resp.status_code == 200
    assert resp.json() == {"state": "updates_active", "active": True}
    assert len(location_service.subscriptions) == 1
    assert client.get("/api/status").json()["screen"]["updates_text"] == "Location updates on"

    resp = client.post("/api/updates", json={"enabled": False})
    assert resp.json() == {"state": "idle", "active": False}
    assert location_service.open_subscriptions == []


def test_start_updates_without_permission(client, permissions):
    permissions.granted = False

    resp = client.post("/api/updates", json={"enabled": True})

    assert resp.status_code == 403
    assert resp.json()["detail"] == "This app requires permission to be granted in order to work properly"


def test_updates_request_validation(client):
    assert client.post("/api/updates", json={}).status_code == 422


# ---------------------------------------------------------------------------
# Accuracy mode
# ---------------------------------------------------------------------------


def test_set_accuracy_while_idle(client):
    data = client.post("/api/accuracy", json={"mode": "high_accuracy"}).json()

    assert data["config"]["accuracy_mode"] == "high_accuracy"
    assert data["restart_required"] is False
    assert client.get("/api/status").json()["screen"]["accuracy_text"] == "Using GPS sensors"


def test_set_accuracy_while_active_needs_restart(client, location_service):
    client.post("/api/updates", json={"enabled": True})

    data = client.post("/api/accuracy", json={"mode": "high_accuracy"}).json()

    assert data["restart_required"] is True
    assert len(location_service.subscriptions) == 1


def test_set_accuracy_invalid_mode(client):
    assert client.post("/api/accuracy", json={"mode": "fastest"}).status_code == 422


# ---------------------------------------------------------------------------
# Refresh and map
# ---------------------------------------------------------------------------


def test_refresh(client, location_service):
    location_service.last_known = HELSINKI

    data = client.post("/api/refresh").json()

    assert data["available"] is True
    assert data["sample"]["latitude"] == 60.1699
    screen = client.get("/api/status").json()["screen"]
    assert screen["latitude"] == "60.1699"
    assert screen["longitude"] == "24.9384"


def test_refresh_without_location(client):
    resp = client.post("/api/refresh")
    assert resp.status_code == 200
    assert resp.json() == {"available": False, "message": "Not available"}


def test_refresh_without_permission(client, permissions):
    permissions.granted = False
    assert client.post("/api/refresh").status_code == 403


def test_map_handoff(client, location_service):
    location_service.last_known = HELSINKI
    client.post("/api/refresh")

    data = client.post("/api/map").json()

    assert data["latitude"] == 60.1699
    assert data["longitude"] == 24.9384
    assert data["url"].startswith("/map?latitude=60.1699&longitude=24.9384&zoom=14.0")


def test_map_handoff_does_not_open_server_side_browser(client, location_service):
    location_service.last_known = HELSINKI
    client.post("/api/refresh")

    with patch("webbrowser.open") as open_browser:
        resp = client.post("/api/map")

    assert resp.status_code == 200
    open_browser.assert_not_called()


def test_map_handoff_without_fix(client, daemon):
    data = client.post("/api/map").json()

    assert data["latitude"] is None
    assert "latitude=0.0" in data["url"]
    assert daemon.map_launcher.last_handoff == (None, None)


def test_map_without_launcher(client, daemon):
    daemon.map_launcher = None
    assert client.post("/api/map").status_code == 503


# ---------------------------------------------------------------------------
# Logs and WebSocket
# ---------------------------------------------------------------------------


def test_logs_empty(client):
    assert client.get("/api/logs").json() == {"logs": []}


def test_logs_limit_zero(client, web_app):
    web_app.web_log_handler.log_buffer.append({"timestamp": "t", "level": "INFO", "message": "m"})
    assert client.get("/api/logs", params={"limit": 0}).json() == {"logs": []}
    assert len(client.get("/api/logs", params={"limit": 1}).json()["logs"]) == 1


def test_logs_without_handler(daemon):
    client = TestClient(GpsMapWebApp(daemon=daemon).app)
    assert client.get("/api/logs").json() == {"logs": []}


def test_websocket_sends_screen_and_pong(client):
    with client.websocket_connect("/ws") as ws:
        message = ws.receive_json()
        assert message["type"] == "screen"
        assert message["data"]["updates_text"] == "Location updates off"

        ws.send_text("ping")
        assert ws.receive_json() == {"type": "pong", "data": "ping"}


def test_websocket_binds_presenter(client, web_app, web_presenter):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
    assert web_presenter.web_app is web_app
    assert web_app.web_log_handler.web_app is web_app


# ---------------------------------------------------------------------------
# ConnectionManager
# ---------------------------------------------------------------------------


def test_broadcast_drops_failed_connections():
    manager = ConnectionManager()
    good = MagicMock()
    good.send_json = AsyncMock()
    bad = MagicMock()
    bad.send_json = AsyncMock(side_effect=RuntimeError("closed"))
    manager.active_connections = [good, bad]

    asyncio.run(manager.broadcast({"type": "screen"}))

    assert manager.active_connections == [good]
    good.send_json.assert_awaited_once_with({"type": "screen"})
