from enum import Enum


class ErrorKind(Enum):
    FETCH = "FETCH"
    PARSE = "PARSE"
    ALLOCATION = "ALLOCATION"


class CrawlError(Exception):
    """Base crawler exception."""
    pass


class UsageError(CrawlError):
    """Raised on malformed command-line input, before any crawling starts."""
    pass


class TerminationInvariantViolation(CrawlError):
    """
    Raised when the pending-work counter goes negative or the frontier is closed twice.
    Never recoverable: the termination protocol itself is broken.
    """
    pass


class ItemError(CrawlError):
    """
    Failure confined to a single work item.
    The worker records it, retires the item and keeps crawling.
    """
    kind = None

    def __init__(self, url, reason):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class FetchError(ItemError):
    """Raised on network failures, timeouts and non-success HTTP statuses."""
    kind = ErrorKind.FETCH

    def __init__(self, url, reason, status_code=None):
        super().__init__(url, reason)
        self.status_code = status_code


class ParseError(ItemError):
    """Raised when a document body cannot be parsed for links."""
    kind = ErrorKind.PARSE


class AllocationError(ItemError):
    """Raised when memory runs out while buffering or parsing a page."""
    kind = ErrorKind.ALLOCATION
