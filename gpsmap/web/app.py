"""FastAPI web application: the location screen, the map screen and their API."""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from gpsmap import __version__, constants
from gpsmap.location.errors import NoLastKnownLocation, PermissionDenied
from gpsmap.location.models import AccuracyMode
from gpsmap.logging import GPSMAP_LOGGER
from gpsmap.web.presenter import LocationScreen

TEMPLATES_DIR = Path(__file__).parent / "templates"


class UpdatesRequest(BaseModel):
    enabled: bool


class AccuracyRequest(BaseModel):
    mode: AccuracyMode


class ConnectionManager:
    """Manages WebSocket connections for real-time updates."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)
        GPSMAP_LOGGER.info(f"WebSocket client connected. Total: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        GPSMAP_LOGGER.info(f"WebSocket client disconnected. Total: {len(self.active_connections)}")

    async def broadcast(self, message: dict):
        """Broadcast message to all connected clients."""
        disconnected = []
        for connection in self.active_connections:
            try:
                await connection.send_json(message)
            except Exception as e:
                GPSMAP_LOGGER.warning(f"Failed to send to WebSocket client: {e}")
                disconnected.append(connection)

        for connection in disconnected:
            self.disconnect(connection)


class GpsMapWebApp:
    """Web application for gpsmap."""

    def __init__(self, daemon=None, web_log_handler=None):
        self.app = FastAPI(title="gpsmap", description="Current location and map", version=__version__)
        self.daemon = daemon
        self.connection_manager = ConnectionManager()
        self.web_log_handler = web_log_handler
        self.loop: Optional[asyncio.AbstractEventLoop] = None

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._setup_routes()

    def set_daemon(self, daemon):
        """Set the daemon instance after initialization."""
        self.daemon = daemon

    def _controller(self):
        if not self.daemon or getattr(self.daemon, "controller", None) is None:
            raise HTTPException(status_code=503, detail="Location session not available")
        return self.daemon.controller

    def _screen(self) -> LocationScreen:
        presenter = getattr(self.daemon, "presenter", None) if self.daemon else None
        if presenter is None:
            return LocationScreen()
        return presenter.snapshot()

    def _bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Route presenter and log pushes through the server's event loop."""
        if self.loop is loop:
            return
        self.loop = loop
        presenter = getattr(self.daemon, "presenter", None) if self.daemon else None
        if presenter is not None:
            presenter.attach(self, loop)
        if self.web_log_handler is not None:
            self.web_log_handler.set_web_app(self, loop)

    def _setup_routes(self):
        """Setup all routes."""

        @self.app.get("/", response_class=HTMLResponse)
        async def location_page():
            """Serve the location screen."""
            return self._render("location.html", "Location")

        @self.app.get("/map", response_class=HTMLResponse)
        async def map_page():
            """Serve the map screen; coordinates come in the query string."""
            return self._render(
                "map.html",
                "Map",
                DEFAULT_ZOOM=json.dumps(constants.MAP_ZOOM_LEVEL),
                MARKER_TITLE=json.dumps(constants.MAP_MARKER_TITLE),
            )

        @self.app.get("/api/version")
        async def get_version():
            return {"version": __version__}

        @self.app.get("/api/status")
        async def get_status():
            """Location screen contents plus the session state."""
            controller = self._controller()
            handoff = controller.current_map_handoff()
            return {
                "screen": self._screen().model_dump(),
                "state": controller.state.value,
                "config": controller.config.to_dict(),
                "permission_granted": controller.permission_gateway.has_fine_location_permission(),
                "has_location": handoff is not None,
            }

        @self.app.get("/api/config")
        async def get_config():
            if not self.daemon or not getattr(self.daemon, "settings", None):
                raise HTTPException(status_code=503, detail="Configuration not available")

            settings = self.daemon.settings
            return {
                "location_source": settings.location_source,
                "update_interval_seconds": settings.update_interval_seconds,
                "fast_update_interval_seconds": settings.fast_update_interval_seconds,
                "high_accuracy": settings.high_accuracy,
                "geocoding_enabled": settings.geocoding_enabled,
                "log_level": settings.log_level,
                "config_path": str(settings.config_manager.get_config_path()),
            }

        @self.app.post("/api/updates")
        def set_updates(request: UpdatesRequest):
            """Turn continuous location updates on or off."""
            controller = self._controller()
            if request.enabled:
                try:
                    controller.start_updates()
                except PermissionDenied as e:
                    GPSMAP_LOGGER.warning(f"Cannot start location updates: {e}")
                    raise HTTPException(status_code=403, detail=constants.PERMISSION_REQUIRED_TEXT) from e
            else:
                controller.stop_updates()
            return {"state": controller.state.value, "active": controller.is_active}

        @self.app.post("/api/accuracy")
        def set_accuracy(request: AccuracyRequest):
            """Switch between GPS sensors and towers + WiFi."""
            controller = self._controller()
            config = controller.set_accuracy_mode(request.mode)
            return {"config": config.to_dict(), "restart_required": controller.is_active}

        @self.app.post("/api/refresh")
        def refresh():
            """Fetch the last known location once."""
            controller = self._controller()
            try:
                sample = controller.refresh_last_known()
            except PermissionDenied as e:
                raise HTTPException(status_code=403, detail=constants.PERMISSION_REQUIRED_TEXT) from e
            except NoLastKnownLocation as e:
                GPSMAP_LOGGER.info(f"Last known location not available: {e}")
                return {"available": False, "message": constants.NOT_AVAILABLE}
            return {"available": True, "sample": sample.to_dict()}

        @self.app.post("/api/map")
        def open_map():
            """Hand the last known position to the map screen."""
            controller = self._controller()
            launcher = getattr(self.daemon, "map_launcher", None)
            if launcher is None:
                raise HTTPException(status_code=503, detail="Map not available")

            handoff = controller.current_map_handoff()
            latitude, longitude = handoff if handoff is not None else (None, None)
            url = launcher.open_map(latitude, longitude)
            return {"url": url, "latitude": latitude, "longitude": longitude}

        @self.app.get("/api/logs")
        async def get_logs(limit: int = 100):
            """Get recent log entries."""
            if self.web_log_handler:
                return {"logs": self.web_log_handler.get_recent_logs(limit)}
            return {"logs": []}

        @self.app.websocket("/ws")
        async def websocket_endpoint(websocket: WebSocket):
            """WebSocket endpoint for real-time screen updates."""
            self._bind_loop(asyncio.get_running_loop())
            await self.connection_manager.connect(websocket)
            try:
                await websocket.send_json({"type": "screen", "data": self._screen().model_dump()})

                # Keep connection alive and answer pings
                while True:
                    data = await websocket.receive_text()
                    await websocket.send_json({"type": "pong", "data": data})

            except WebSocketDisconnect:
                self.connection_manager.disconnect(websocket)
            except Exception as e:
                GPSMAP_LOGGER.error(f"WebSocket error: {e}")
                self.connection_manager.disconnect(websocket)

    def _render(self, template: str, title: str, **values: str) -> HTMLResponse:
        template_path = TEMPLATES_DIR / template
        if template_path.exists():
            html = template_path.read_text()
            for name, value in values.items():
                html = html.replace(f"{{{{ {name} }}}}", value)
            return HTMLResponse(html)
        return HTMLResponse(content=f"<h1>gpsmap {title}</h1><p>Template file not found</p>", status_code=500)

    async def broadcast_screen(self, screen: LocationScreen):
        """Broadcast the location screen to all connected clients."""
        await self.connection_manager.broadcast({"type": "screen", "data": screen.model_dump()})

    async def broadcast_log(self, log_entry: dict):
        """Broadcast log entry to all connected clients."""
        await self.connection_manager.broadcast({"type": "log", "data": log_entry})
