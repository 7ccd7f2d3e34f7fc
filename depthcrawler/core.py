"""
FILE DESCRIPTION: Foundational module for global configuration and logging.
KEY FUNCTIONS/CLASSES: setup_logger, CompanyFormatter, logger, configuration constants
"""

import logging
import os
import sys
from datetime import datetime

from dotenv import load_dotenv

# === CONFIGURATION SECTION ===

# Values below can be overridden through the environment or a local .env file
load_dotenv()

# Network timeout for HTTP requests (seconds)
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", 10))

# Retries for 429/503, timeouts and connection errors (0 disables retrying)
FETCH_RETRIES = int(os.getenv("FETCH_RETRIES", 2))
RETRY_DELAY = float(os.getenv("RETRY_DELAY", 1.0))

# Worker pool size used when the command line does not give one
DEFAULT_WORKERS = int(os.getenv("DEFAULT_WORKERS", 4))

# Allocation failures tolerated before a health warning is raised
ALLOCATION_ALERT_THRESHOLD = int(os.getenv("ALLOCATION_ALERT_THRESHOLD", 3))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

USER_AGENT = os.getenv(
    "USER_AGENT",
    "Mozilla/5.0 (compatible; DepthCrawler/1.0; +https://example.invalid/bot)",
)


# === LOGGING SECTION ===

class CompanyFormatter(logging.Formatter):
    """
    FLOW: Receives a log record -> Extracts timestamp -> Formats according to house standard
    (e.g., [ Tue Jan 06 05:32:41 AM UTC 2026 ]) -> Prepends level and context -> Returns final string.
    """
    def format(self, record):
        dt = datetime.fromtimestamp(record.created)
        timestamp = dt.strftime("%a %b %d %I:%M:%S %p UTC %Y")
        context = getattr(record, 'context', 'root')
        message = f"[ {timestamp} ] : {record.levelname} : {context} : {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def _has_file_handler(logger, log_file):
    target = os.path.abspath(log_file)
    return any(
        isinstance(h, logging.FileHandler) and h.baseFilename == target
        for h in logger.handlers
    )


def setup_logger(name="depthcrawler", log_file=None, level=LOG_LEVEL):
    """
    FLOW: Initializes/Retrieves logger -> Reuses existing handlers to prevent duplicates ->
    Sets propagation for child loggers -> Attaches Console and optional File handlers with CompanyFormatter.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Child loggers propagate to the package logger, which owns the handlers
    if name != "depthcrawler":
        logger.propagate = True
        setup_logger("depthcrawler", log_file=log_file, level=level)
        return logger

    formatter = CompanyFormatter()

    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
        logger.propagate = False

    if log_file and not _has_file_handler(logger, log_file):
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# Global logger instance
logger = setup_logger()
