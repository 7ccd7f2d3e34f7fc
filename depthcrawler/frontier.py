"""
Thread-safe frontier for the web crawler.
Owns the FIFO queue of work items and the pending-work counter that drives termination,
plus the visited set that guarantees each URL is fetched at most once.
"""

import threading
from collections import deque

from depthcrawler.core import logger
from depthcrawler.errors import TerminationInvariantViolation
from depthcrawler.normalizer import normalize_url


class Frontier:
    """
    FLOW: enqueue() counts an item as pending and makes it visible in one critical section ->
    dequeue() blocks on a condition until work or closure -> retire() uncounts a finished item and,
    when nothing is pending any more, closes the frontier so every blocked worker wakes and exits.

    An empty queue alone never means the crawl is over: a worker may be mid-fetch and about to
    enqueue children. Only the pending counter reaching zero does.
    """

    def __init__(self):
        self._items = deque()
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._pending = 0
        self._closed = False
        self._enqueued_total = 0
        self._discarded_total = 0

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def pending(self) -> int:
        with self._lock:
            return self._pending

    def enqueue(self, item) -> bool:
        """
        Append an item to the tail and count it as pending.
        Never blocks. After closure the item is discarded and False is returned.
        """
        with self._lock:
            if self._closed:
                self._discarded_total += 1
                accepted = False
            else:
                self._pending += 1
                self._items.append(item)
                self._enqueued_total += 1
                self._not_empty.notify()
                accepted = True

        if not accepted:
            logger.info(f"enqueue: discarded after close: {item.url} (depth={item.depth})")
        return accepted

    def dequeue(self):
        """
        Block until an item is available or the frontier is closed and drained.
        Returns (item, True), or (None, False) when the caller should exit.
        """
        with self._not_empty:
            while not self._items and not self._closed:
                self._not_empty.wait()
            if not self._items:
                return None, False
            return self._items.popleft(), True

    def retire(self, item) -> bool:
        """
        Mark a dequeued item as fully processed, after any children it produced were enqueued.
        Returns True if this retirement completed the crawl and closed the frontier.
        """
        with self._lock:
            if self._pending <= 0:
                raise TerminationInvariantViolation(
                    f"retire({item.url!r}) with pending={self._pending}: counter would go negative"
                )
            self._pending -= 1
            finished = self._pending == 0 and not self._closed
            if finished:
                self._close_locked()

        if finished:
            logger.info("retire: pending work reached zero, frontier closed")
        return finished

    def close(self):
        """Close the frontier and wake every blocked dequeuer. Must happen exactly once."""
        with self._lock:
            self._close_locked()

    def cancel(self) -> int:
        """
        Close immediately regardless of pending work and drop everything still queued.
        Idempotent. Returns the number of queued items dropped.
        """
        with self._lock:
            if self._closed:
                return 0
            dropped = len(self._items)
            self._items.clear()
            self._pending -= dropped
            self._discarded_total += dropped
            self._close_locked()

        logger.warning(f"cancel: frontier closed early, {dropped} queued item(s) dropped")
        return dropped

    def _close_locked(self):
        if self._closed:
            raise TerminationInvariantViolation("frontier closed twice")
        self._closed = True
        self._not_empty.notify_all()

    def get_stats(self):
        """
        Return stats: queue size, pending count, totals, closed flag.
        """
        with self._lock:
            return {
                'queue_size': len(self._items),
                'pending': self._pending,
                'enqueued_total': self._enqueued_total,
                'discarded_total': self._discarded_total,
                'closed': self._closed,
            }


class VisitedSet:
    """
    Monotonic set of claimed URLs.
    try_claim() is a single check-and-insert under one lock, so two workers can never
    both win the same URL.

    Each entry also keeps the shallowest depth the URL was reached at and, once the claiming
    worker has processed the page, the links extracted from it. A later, shallower discovery
    re-expands the cached links instead of fetching the page again, so the final set does not
    depend on which path won the claim.
    """

    def __init__(self):
        # url -> [shallowest depth seen, cached links or None while the claimer is busy]
        self._claimed = {}
        self._lock = threading.Lock()

    def try_claim(self, url: str, depth: int = 0) -> bool:
        normalized = normalize_url(url)
        with self._lock:
            if normalized in self._claimed:
                return False
            self._claimed[normalized] = [depth, None]
            return True

    def rediscover(self, url: str, depth: int):
        """
        Report an already claimed URL reached again at `depth`.
        Returns the cached links when `depth` is shallower than any depth seen before and the
        links are known; the caller expands them one level below `depth`.
        Returns None otherwise: nothing changed, or the claiming worker is still busy and
        picks up the new depth in record_links().
        """
        normalized = normalize_url(url)
        with self._lock:
            entry = self._claimed.get(normalized)
            if entry is None or depth >= entry[0]:
                return None
            entry[0] = depth
            return entry[1]

    def record_links(self, url: str, links) -> int:
        """Cache the links of a claimed page. Returns the shallowest depth to expand them from."""
        normalized = normalize_url(url)
        with self._lock:
            entry = self._claimed[normalized]
            entry[1] = tuple(links)
            return entry[0]

    def depth_of(self, url):
        try:
            normalized = normalize_url(url)
        except ValueError:
            return None
        with self._lock:
            entry = self._claimed.get(normalized)
            return entry[0] if entry else None

    def __contains__(self, url) -> bool:
        return self.depth_of(url) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._claimed)

    def snapshot(self) -> frozenset:
        with self._lock:
            return frozenset(self._claimed)
