from ._gpsmap_logger import GPSMAP_LOGGER

__all__ = ["GPSMAP_LOGGER"]
