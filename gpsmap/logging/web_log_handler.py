"""Log handler that buffers records for the web UI and pushes them over WebSocket."""

import asyncio
import logging
from collections import deque
from datetime import datetime
from typing import Any, Dict, List, Optional

from gpsmap.logging._gpsmap_logger import ExcludeWebLogsFilter


class WebLogHandler(logging.Handler):
    """Keeps the most recent log entries in memory for ``/api/logs``."""

    def __init__(self, max_logs: int = 500):
        super().__init__()
        self.log_buffer: deque = deque(maxlen=max_logs)
        self.web_app = None
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._web_filter = ExcludeWebLogsFilter()

    def set_web_app(self, web_app, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Attach the web app so new entries are broadcast to connected clients."""
        self.web_app = web_app
        self.loop = loop

    def format_time(self, record: logging.LogRecord) -> str:
        return datetime.fromtimestamp(record.created).isoformat()

    def emit(self, record: logging.LogRecord) -> None:
        # Errors always make it into the buffer, even from noisy sources
        if record.levelno < logging.ERROR and not self._web_filter.filter(record):
            return

        try:
            entry = {
                "timestamp": self.format_time(record),
                "level": record.levelname,
                "message": self.format(record),
            }
        except Exception:
            self.handleError(record)
            return

        self.log_buffer.append(entry)

        if self.web_app is not None and self.loop is not None and self.loop.is_running():
            asyncio.run_coroutine_threadsafe(self.web_app.broadcast_log(entry), self.loop)

    def get_recent_logs(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        if limit is not None and limit <= 0:
            return []
        logs = list(self.log_buffer)
        if limit is not None:
            return logs[-limit:]
        return logs
