import time
import webbrowser
from typing import Callable, Optional

from gpsmap import constants
from gpsmap.dispatch import SerialDispatcher
from gpsmap.location.errors import NoLastKnownLocation
from gpsmap.location.geocoding import NominatimGeocoder, NullGeocoder
from gpsmap.location.gpsd_location_service import GpsdLocationService
from gpsmap.location.interfaces import (
    PermissionGateway,
    PermissionResult,
    PlatformLocationService,
    ReverseGeocoder,
)
from gpsmap.location.permissions import ConsentPermissionGateway
from gpsmap.location.session_controller import LocationSessionController
from gpsmap.location.simulated_location_service import SimulatedLocationService
from gpsmap.logging import GPSMAP_LOGGER
from gpsmap.settings import GpsMapSettings
from gpsmap.web.map_launcher import WebMapLauncher
from gpsmap.web.presenter import WebPresenter
from gpsmap.web.server import GpsMapWebServer


class GpsMapDaemon:
    def __init__(
        self,
        settings: GpsMapSettings,
        location_service: Optional[PlatformLocationService] = None,
        permission_gateway: Optional[PermissionGateway] = None,
        geocoder: Optional[ReverseGeocoder] = None,
        prompt: Optional[Callable[[str], bool]] = None,
        enable_web: bool = True,
        open_browser: bool = False,
    ):
        self.settings = settings
        GPSMAP_LOGGER.setLevel(self.settings.log_level)
        self.enable_web = enable_web
        self.open_browser = open_browser

        self.location_service = location_service or self._create_location_service()
        self.permission_gateway = permission_gateway or ConsentPermissionGateway(
            granted=settings.location_permission_granted,
            prompt=prompt,
            on_granted=settings.remember_permission_grant,
        )
        self.geocoder = geocoder or self._create_geocoder()

        config = settings.update_config()
        self.presenter = WebPresenter(geocoder=self.geocoder, accuracy_mode=config.accuracy_mode)
        self.ui_dispatcher = SerialDispatcher()
        self.controller = LocationSessionController(
            self.location_service,
            self.permission_gateway,
            self.presenter,
            config=config,
            ui_dispatcher=self.ui_dispatcher,
            last_known_timeout_seconds=settings.last_known_timeout_seconds,
        )

        self.web_server = None
        if self.enable_web:
            self.web_server = GpsMapWebServer(daemon=self, host=settings.web_host, port=settings.web_port)
        self.map_launcher = WebMapLauncher()

    def _create_location_service(self) -> PlatformLocationService:
        """Factory method for the platform location service selected in settings."""
        if self.settings.location_source == "simulated":
            GPSMAP_LOGGER.info("Using simulated location service")
            return SimulatedLocationService(
                latitude=self.settings.simulated_latitude,
                longitude=self.settings.simulated_longitude,
            )

        service = GpsdLocationService()
        if service.is_available():
            GPSMAP_LOGGER.info("Using gpsd location service")
        else:
            GPSMAP_LOGGER.warning("gpspipe not found - no fixes until gpsd is installed (or use --source simulated)")
        return service

    def _create_geocoder(self) -> ReverseGeocoder:
        if not self.settings.geocoding_enabled:
            return NullGeocoder()
        return NominatimGeocoder(url=self.settings.nominatim_url, user_agent=self.settings.geocoder_user_agent)

    def ensure_permission(self) -> bool:
        """
        Ask for location permission if it has not been granted yet.

        Returns:
            True when permission is granted, False when the user refused.
        """
        if self.permission_gateway.has_fine_location_permission():
            return True

        result = self.permission_gateway.request_fine_location_permission().result()
        if result is PermissionResult.GRANTED:
            return True

        GPSMAP_LOGGER.error(constants.PERMISSION_REQUIRED_TEXT)
        return False

    def run(self) -> int:
        """Run until interrupted. Returns the process exit code."""
        if not self.ensure_permission():
            self._shutdown()
            return 1

        try:
            if self.enable_web:
                self.web_server.start()
                GPSMAP_LOGGER.info(f"Location screen available at {self.web_server.url}")
                if self.open_browser:
                    webbrowser.open(self.web_server.url)

            # Show the latest known position straight away
            try:
                self.controller.refresh_last_known()
            except NoLastKnownLocation as e:
                GPSMAP_LOGGER.info(f"Location not available yet: {e}")

            GPSMAP_LOGGER.info("gpsmap running... (press Ctrl+C to exit)")
            self._keep_running()
        finally:
            self._shutdown()
        return 0

    def _keep_running(self):
        """Keep the daemon running until interrupted."""
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            GPSMAP_LOGGER.info("Shutting down gpsmap.")

    def _shutdown(self):
        """Clean up resources on shutdown."""
        self.controller.stop_updates()
        self.location_service.close()
        self.ui_dispatcher.shutdown(wait=False)
        self.presenter.close()
        if isinstance(self.geocoder, NominatimGeocoder):
            self.geocoder.close()
        if self.enable_web and self.web_server:
            GPSMAP_LOGGER.info("Stopping web server...")
            self.web_server.stop()
