"""
Worker thread for the crawler.
Each worker dequeues an item, claims it, fetches it, enqueues its links one level deeper,
and retires it. Exits when the frontier reports closure.
"""

import threading
from dataclasses import replace

from depthcrawler.core import logger
from depthcrawler.errors import (
    AllocationError,
    FetchError,
    ItemError,
    ParseError,
    TerminationInvariantViolation,
)
from depthcrawler.normalizer import normalize_url


class CrawlWorker(threading.Thread):
    """
    FLOW: Main worker loop -> Dequeues item (blocks, exits on closure) -> Claims URL in the visited set ->
    Fetches -> Extracts and caches links -> Enqueues children one level below the shallowest depth
    the URL was reached at -> Retires the item. A claimed URL reached again at a shallower depth
    is re-expanded from its cached links without a second fetch.

    Per-item failures are recorded and never leave the loop. Any other error ends the worker,
    but only after the item it holds has been retired.
    """

    def __init__(self, frontier, visited, max_depth, stats, fetcher_factory, extractor,
                 name="Worker", visited_log=None):
        super().__init__(name=name, daemon=True)
        self.frontier = frontier
        self.visited = visited
        self.max_depth = max_depth
        self.stats = stats
        self.fetcher_factory = fetcher_factory
        self.extractor = extractor
        self.visited_log = visited_log
        self.processed_count = 0
        self.crashed = False
        self.fatal_error = None

    def log(self, level, msg, **kwargs):
        getattr(logger, level)(msg, extra={'context': self.name}, **kwargs)

    def run(self):
        self.log("info", "started")
        try:
            fetcher = self.fetcher_factory()
        except Exception as e:
            # Holds no item yet, so there is nothing to retire
            self.crashed = True
            self.log("error", f"Fetch client init failed, worker exiting: {e}")
            return

        try:
            while True:
                item, found = self.frontier.dequeue()
                if not found:
                    break
                try:
                    self.process(item, fetcher)
                finally:
                    self.frontier.retire(item)
                    self.processed_count += 1
        except TerminationInvariantViolation as e:
            self.fatal_error = e
            self.log("critical", f"Termination invariant violated: {e}")
            self.frontier.cancel()
        except Exception as e:
            self.crashed = True
            self.log("error", f"Unrecoverable worker error, exiting: {e}", exc_info=True)
        finally:
            close = getattr(fetcher, "close", None)
            if close:
                close()

        self.log("info", f"finished ({self.processed_count} items)")

    def process(self, item, fetcher):
        # Producers never enqueue beyond max depth; this guards against a bad producer
        if item.depth > self.max_depth:
            self.log("warning", f"Dropping {item.url}: depth {item.depth} exceeds max depth {self.max_depth}")
            return

        if not self.visited.try_claim(item.url, item.depth):
            self._rediscovered(item)
            return

        links = self._fetch_links(item, fetcher)
        depth = self.visited.record_links(item.url, links)
        if depth < item.depth:
            self.log("info", f"{item.url} was reached at depth {depth} while in flight, expanding from there")
        if depth < self.max_depth:
            self._fan_out(replace(item, depth=depth), links)

    def _fetch_links(self, item, fetcher):
        """Fetch one claimed URL and return its links. Failures are recorded and yield no links."""
        self.log("info", f"Fetching URL: {item.url} (depth={item.depth})")
        try:
            result = fetcher.fetch(item.url, referer=item.discovered_from)
        except ItemError as e:
            self._record_failure(e)
            return ()
        except MemoryError:
            self._record_failure(AllocationError(item.url, "out of memory during fetch"))
            return ()
        except Exception as e:
            self._record_failure(FetchError(item.url, f"unexpected fetch failure: {e}"))
            return ()

        self.stats.record_fetch(self.name, result)
        if self.visited_log:
            self.visited_log.append(item, result.status_code)

        # Pages at max depth are still parsed, a shallower path may reach them later.
        # Only a depth-0 crawl has nothing to cache.
        if self.max_depth == 0:
            return ()

        if not result.is_html:
            self.stats.record_ignored()
            self.log("debug", f"Not expanding {item.url}: content type {result.content_type or 'unknown'}")
            return ()

        try:
            return self.extractor.extract_urls(result.body, result.final_url)
        except ItemError as e:
            self._record_failure(e)
        except MemoryError:
            self._record_failure(AllocationError(item.url, "out of memory during link extraction"))
        except Exception as e:
            self._record_failure(ParseError(item.url, f"link extraction failed: {e}"))
        return ()

    def _rediscovered(self, item):
        links = self.visited.rediscover(item.url, item.depth)
        if links is None:
            self.stats.record_duplicate(self.name)
            self.log("debug", f"Already claimed: {item.url}")
            return
        self.stats.record_reexpanded(self.name)
        self.log("info", f"Re-expanding {item.url} at shallower depth {item.depth} ({len(links)} cached links)")
        self._fan_out(item, links)

    def _fan_out(self, item, links):
        queued = 0
        seen = set()
        child_depth = item.depth + 1
        for link in links:
            if self.frontier.closed:
                self.log("info", f"Frontier closed, not enqueuing remaining links from {item.url}")
                break
            try:
                url = normalize_url(link)
            except ValueError:
                continue
            if url in seen:
                continue
            seen.add(url)
            # Pre-check only; try_claim and rediscover stay the authority
            known = self.visited.depth_of(url)
            if known is not None and known <= child_depth:
                continue
            if self.frontier.enqueue(item.child(url)):
                queued += 1
        self.log("debug", f"Queued {queued} new URLs from {item.url}")

    def _record_failure(self, error):
        self.stats.record_error(self.name, error)
        self.log("error", f"{error.kind.value} error for {error.url}: {error.reason}")
