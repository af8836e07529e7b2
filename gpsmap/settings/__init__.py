from gpsmap.settings._gpsmap_settings import GpsMapSettings
from gpsmap.settings.config_manager import ConfigManager

__all__ = ["ConfigManager", "GpsMapSettings"]
