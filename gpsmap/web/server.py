"""Runs the web application with uvicorn on a background thread."""

import logging
import threading
from typing import Optional

import uvicorn

from gpsmap import constants
from gpsmap.logging import GPSMAP_LOGGER
from gpsmap.logging.web_log_handler import WebLogHandler
from gpsmap.web.app import GpsMapWebApp


class GpsMapWebServer:
    def __init__(self, daemon=None, host: str = constants.DEFAULT_WEB_HOST, port: int = constants.DEFAULT_WEB_PORT):
        self.host = host
        self.port = port
        self.web_log_handler = WebLogHandler()
        self.web_log_handler.setFormatter(logging.Formatter("%(message)s"))
        self.web_app = GpsMapWebApp(daemon=daemon, web_log_handler=self.web_log_handler)
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def ensure_log_handler(self) -> None:
        """Attach the web log handler to the root logger if it is missing."""
        if self.web_log_handler not in GPSMAP_LOGGER.handlers:
            GPSMAP_LOGGER.addHandler(self.web_log_handler)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            GPSMAP_LOGGER.warning("Web server already running")
            return

        self.ensure_log_handler()
        config = uvicorn.Config(
            self.web_app.app,
            host=self.host,
            port=self.port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(target=self._server.run, name="gpsmap-web", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._server is None:
            return

        self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=5.0)
        self._server = None
        self._thread = None
        GPSMAP_LOGGER.removeHandler(self.web_log_handler)
