from depthcrawler.coordinator import CrawlCoordinator
from depthcrawler.errors import (
    AllocationError,
    CrawlError,
    ErrorKind,
    FetchError,
    ParseError,
    TerminationInvariantViolation,
    UsageError,
)
from depthcrawler.frontier import Frontier, VisitedSet
from depthcrawler.models import CrawlSummary, FetchResult, WorkItem

__version__ = "1.0.0"
