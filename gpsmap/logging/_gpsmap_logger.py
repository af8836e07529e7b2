import logging


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[94m",  # Blue
        "INFO": "\033[92m",  # Green
        "WARNING": "\033[93m",  # Yellow
        "ERROR": "\033[91m",  # Red
        "CRITICAL": "\033[95m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record):
        # Colour a copy of the level name so other handlers see the plain one
        original = record.levelname
        color = self.COLORS.get(original, self.RESET)
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class ExcludeHttpRequestFilter(logging.Filter):
    """Drop httpx request chatter ("HTTP Request: GET ...") from the console."""

    def filter(self, record):
        return not record.getMessage().startswith("HTTP Request:")


class ExcludeWebLogsFilter(logging.Filter):
    """Drop uvicorn and WebSocket housekeeping logs from the web log buffer."""

    def filter(self, record):
        if record.name.startswith("uvicorn"):
            return False
        message = record.getMessage()
        if "WebSocket" in message:
            return False
        if message.startswith("HTTP Request:"):
            return False
        return True


GPSMAP_LOGGER = logging.getLogger()
GPSMAP_LOGGER.setLevel(logging.INFO)

handler = logging.StreamHandler()
log_format = "%(asctime)s %(levelname)s %(message)s"
date_format = "%Y-%m-%d %H:%M:%S"
formatter = ColoredFormatter(fmt=log_format, datefmt=date_format)
handler.setFormatter(formatter)
handler.addFilter(ExcludeHttpRequestFilter())
GPSMAP_LOGGER.handlers.clear()
GPSMAP_LOGGER.addHandler(handler)
