"""
FILE DESCRIPTION: Crawl orchestration: owns the frontier, visited set and stats of one crawl,
seeds the first item, runs a fixed pool of worker threads and reports the summary.
KEY FUNCTIONS/CLASSES: CrawlCoordinator
"""

import threading

from depthcrawler.core import DEFAULT_WORKERS, REQUEST_TIMEOUT, logger
from depthcrawler.errors import TerminationInvariantViolation
from depthcrawler.fetcher import PageFetcher
from depthcrawler.frontier import Frontier, VisitedSet
from depthcrawler.metrics import CrawlStats
from depthcrawler.models import CrawlSummary, WorkItem
from depthcrawler.normalizer import normalize_url
from depthcrawler.parser import LinkExtractor
from depthcrawler.worker import CrawlWorker


class CrawlCoordinator:
    """
    FLOW: Validates settings -> Seeds (seed, depth 0) so pending starts at 1 before any worker runs ->
    Starts exactly N workers -> Joins them -> Cancels the frontier if workers died with work pending ->
    Re-raises a termination invariant violation, otherwise returns a CrawlSummary.

    All state is per instance: several crawls can run in one process.
    """

    JOIN_POLL_SECONDS = 0.2

    def __init__(self, seed_url, max_depth, worker_count=DEFAULT_WORKERS, fetcher_factory=None,
                 extractor=None, visited_log=None, same_site=False, timeout=REQUEST_TIMEOUT):
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        if worker_count < 1:
            raise ValueError(f"worker_count must be >= 1, got {worker_count}")

        self.seed_url = normalize_url(seed_url)
        self.max_depth = max_depth
        self.worker_count = worker_count
        self.fetcher_factory = fetcher_factory or (lambda: PageFetcher(timeout=timeout))
        self.extractor = extractor or LinkExtractor(same_site=same_site, seed_url=self.seed_url)
        self.visited_log = visited_log

        self.frontier = Frontier()
        self.visited = VisitedSet()
        self.stats = CrawlStats()
        self.workers = []
        self.cancelled = False
        self._cancel_requested = threading.Event()
        self._started = False
        self._state_lock = threading.Lock()

    def run(self) -> CrawlSummary:
        with self._state_lock:
            if self._started:
                raise RuntimeError("a CrawlCoordinator runs exactly one crawl")
            self._started = True

        self.stats.mark_started()
        logger.info(
            f"=== CRAWL STARTING === seed={self.seed_url} max_depth={self.max_depth} workers={self.worker_count}"
        )
        self.frontier.enqueue(WorkItem(url=self.seed_url, depth=0))

        self.workers = [
            CrawlWorker(
                self.frontier,
                self.visited,
                self.max_depth,
                self.stats,
                self.fetcher_factory,
                self.extractor,
                name=f"Worker-{i}",
                visited_log=self.visited_log,
            )
            for i in range(self.worker_count)
        ]
        for worker in self.workers:
            worker.start()

        self._join_workers()

        fatal = next((w.fatal_error for w in self.workers if w.fatal_error), None)
        if fatal:
            raise fatal

        if not self.frontier.closed:
            crashed = sum(1 for w in self.workers if w.crashed)
            logger.error(
                f"All workers exited ({crashed} crashed) with {self.frontier.pending} item(s) pending; cancelling"
            )
            self.cancel()

        summary = self.build_summary()
        logger.info(
            f"=== CRAWL FINISHED === visited={summary.visited} fetched={summary.fetched} "
            f"errors={summary.error_count} cancelled={summary.cancelled}"
        )
        return summary

    def _join_workers(self):
        # Timed joins keep the main thread responsive to signal handlers
        for worker in self.workers:
            while worker.is_alive():
                worker.join(timeout=self.JOIN_POLL_SECONDS)
                if self._cancel_requested.is_set() and not self.cancelled:
                    logger.info("Cancellation requested, cancelling crawl...")
                    self.cancel()

    @property
    def cancel_requested(self):
        return self._cancel_requested.is_set()

    def request_cancel(self):
        """
        Ask the running crawl to cancel. Only sets an event, so it is safe to call from a
        signal handler that may interrupt this thread while it holds a crawl lock.
        The joining thread performs the cancellation on its next poll.
        """
        self._cancel_requested.set()

    def cancel(self):
        """Stop the crawl now: close the frontier and drop everything still queued. Idempotent."""
        with self._state_lock:
            self.cancelled = True
        dropped = self.frontier.cancel()
        if dropped:
            logger.info(f"Crawl cancelled, {dropped} queued URL(s) discarded")

    def build_summary(self) -> CrawlSummary:
        frontier_stats = self.frontier.get_stats()
        if frontier_stats['pending'] < 0:
            raise TerminationInvariantViolation(f"pending counter ended at {frontier_stats['pending']}")
        visited_urls = self.visited.snapshot()
        return CrawlSummary(
            seed_url=self.seed_url,
            max_depth=self.max_depth,
            worker_count=self.worker_count,
            visited=len(visited_urls),
            fetched=self.stats.fetched,
            duplicates=self.stats.duplicates,
            reexpanded=self.stats.reexpanded,
            discarded=frontier_stats['discarded_total'],
            pending=frontier_stats['pending'],
            cancelled=self.cancelled,
            duration_sec=self.stats.elapsed,
            errors=self.stats.error_counts(),
            visited_urls=tuple(sorted(visited_urls)),
        )
