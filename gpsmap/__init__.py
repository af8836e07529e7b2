"""gpsmap: show the current location and put it on a map."""

__version__ = "0.1.0"
