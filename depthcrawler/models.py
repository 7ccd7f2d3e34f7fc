from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class WorkItem:
    """
    One unit of crawl work: a URL and its link distance from the seed.
    Owned by the Frontier while queued, then by the single worker that dequeued it.
    """
    url: str
    depth: int
    discovered_from: Optional[str] = None

    def __post_init__(self):
        if self.depth < 0:
            raise ValueError(f"depth must be >= 0, got {self.depth}")

    def child(self, url: str) -> "WorkItem":
        return WorkItem(url=url, depth=self.depth + 1, discovered_from=self.url)


@dataclass(frozen=True)
class FetchResult:
    """
    Successful fetch of one URL.

    INVARIANT: This object is TRANSIENT.
    The body is handed to link extraction and then discarded.
    """
    url: str
    final_url: str
    status_code: int
    content_type: str
    body: str
    fetch_time_ms: int = 0

    @property
    def is_html(self) -> bool:
        ct = self.content_type.lower()
        return "text/html" in ct or "application/xhtml" in ct

    @property
    def size_bytes(self) -> int:
        return len(self.body.encode("utf-8", errors="ignore"))


@dataclass(frozen=True)
class CrawlSummary:
    """Final report of one crawl invocation."""
    seed_url: str
    max_depth: int
    worker_count: int
    visited: int
    fetched: int
    duplicates: int
    discarded: int
    pending: int
    cancelled: bool
    duration_sec: float
    reexpanded: int = 0
    errors: Dict[str, int] = field(default_factory=dict)
    visited_urls: Tuple[str, ...] = ()

    @property
    def error_count(self) -> int:
        return sum(self.errors.values())

    def to_dict(self) -> dict:
        return {
            'seed_url': self.seed_url,
            'max_depth': self.max_depth,
            'worker_count': self.worker_count,
            'visited': self.visited,
            'fetched': self.fetched,
            'duplicates': self.duplicates,
            'reexpanded': self.reexpanded,
            'discarded': self.discarded,
            'pending': self.pending,
            'cancelled': self.cancelled,
            'duration_sec': self.duration_sec,
            'errors': dict(self.errors),
            'error_count': self.error_count,
        }
