"""
Append-only record of fetched URLs.
Written by workers as a side effect; nothing in the crawl ever reads it back.
"""

from datetime import datetime
from threading import Lock

from depthcrawler.core import logger


class VisitedLog:
    """Thread-safe file logger for visited URLs. One tab-separated line per URL."""

    def __init__(self, path):
        self.path = path
        self._lock = Lock()

    def append(self, item, status_code=None):
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        entry = f"{timestamp}\t{item.depth}\t{status_code if status_code is not None else '-'}\t{item.url}\n"
        with self._lock:
            try:
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(entry)
            except OSError as e:
                logger.warning(f"Failed to write visited log {self.path}: {e}")
