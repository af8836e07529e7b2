"""Application-wide constants for gpsmap.

Shared values live here so the location core, the web UI and the settings
layer agree on defaults without importing each other.
"""

# ============================================================================
# LOCATION UPDATES
# ============================================================================
DEFAULT_UPDATE_INTERVAL_SECONDS = 5.0
FAST_UPDATE_INTERVAL_SECONDS = 2.0

# Upper bound on waiting for a last-known fix
LAST_KNOWN_TIMEOUT_SECONDS = 3.0

# ============================================================================
# DISPLAY TEXT
# ============================================================================
NOT_AVAILABLE = "Not available"
UPDATES_ON_TEXT = "Location updates on"
UPDATES_OFF_TEXT = "Location updates off"
HIGH_ACCURACY_TEXT = "Using GPS sensors"
BALANCED_POWER_TEXT = "Using Towers + WiFi"
PERMISSION_REQUIRED_TEXT = "This app requires permission to be granted in order to work properly"

# ============================================================================
# MAP SCREEN
# ============================================================================
MAP_ZOOM_LEVEL = 14.0  # Higher zoom number zooms closer
MAP_MARKER_TITLE = "User's current location"

# ============================================================================
# REVERSE GEOCODING
# ============================================================================
NOMINATIM_REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"
GEOCODER_USER_AGENT = "gpsmap/0.1 (location viewer)"
GEOCODE_CACHE_PRECISION = 4  # ~11 m of latitude

# ============================================================================
# SIMULATED RECEIVER
# ============================================================================
SIMULATED_START_LATITUDE = 60.1699
SIMULATED_START_LONGITUDE = 24.9384

# ============================================================================
# WEB SERVER
# ============================================================================
DEFAULT_WEB_HOST = "127.0.0.1"
DEFAULT_WEB_PORT = 24877
