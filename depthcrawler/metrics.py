"""
Centralized metrics tracking and terminal output formatting for the crawler.
Thread-safe counters updated by workers, plus the final summary tables.
"""

import os
import time
from collections import defaultdict
from datetime import datetime, timedelta
from threading import Lock

import psutil
from tabulate import tabulate

from depthcrawler.core import ALLOCATION_ALERT_THRESHOLD, logger
from depthcrawler.errors import ErrorKind

SUMMARY_BANNER = "CRAWL SESSION SUMMARY"


class CrawlStats:
    """
    Centralized metrics tracker for one crawl.
    Tracks per-worker and per-error-kind statistics with thread-safe operations.
    """

    def __init__(self, allocation_alert_threshold=ALLOCATION_ALERT_THRESHOLD):
        self.lock = Lock()
        self.start_time = time.time()
        self.started_at = datetime.now()
        self.allocation_alert_threshold = allocation_alert_threshold
        self.allocation_alert_raised = False

        self.fetched = 0
        self.duplicates = 0
        self.reexpanded = 0
        self.ignored = 0
        self.total_size_bytes = 0
        self.total_fetch_time_ms = 0
        self.errors = defaultdict(int)
        self.failures = []  # (url, kind, reason)

        self.worker_stats = defaultdict(lambda: {
            'fetched': 0,
            'duplicates': 0,
            'reexpanded': 0,
            'failed': 0,
        })

        self.process = psutil.Process(os.getpid())
        self.initial_memory_mb = self.get_current_memory_usage()
        self.peak_memory_mb = self.initial_memory_mb

    def get_current_memory_usage(self):
        try:
            return self.process.memory_info().rss / 1024 / 1024
        except psutil.Error:
            return 0.0

    def mark_started(self):
        """Restart the clock when the crawl itself begins, not when it was configured."""
        with self.lock:
            self.start_time = time.time()
            self.started_at = datetime.now()

    @property
    def elapsed(self):
        return time.time() - self.start_time

    def record_fetch(self, worker_name, result):
        with self.lock:
            self.fetched += 1
            self.total_size_bytes += result.size_bytes
            self.total_fetch_time_ms += result.fetch_time_ms
            self.worker_stats[worker_name]['fetched'] += 1

    def record_duplicate(self, worker_name):
        with self.lock:
            self.duplicates += 1
            self.worker_stats[worker_name]['duplicates'] += 1

    def record_reexpanded(self, worker_name):
        with self.lock:
            self.reexpanded += 1
            self.worker_stats[worker_name]['reexpanded'] += 1

    def record_ignored(self):
        with self.lock:
            self.ignored += 1

    def record_error(self, worker_name, error):
        """
        Record a per-item failure. Raises the allocation health signal once
        when allocation failures reach the configured threshold.
        """
        kind = error.kind or ErrorKind.FETCH
        with self.lock:
            self.errors[kind] += 1
            self.failures.append((error.url, kind, error.reason))
            self.worker_stats[worker_name]['failed'] += 1
            alert = (
                kind is ErrorKind.ALLOCATION
                and not self.allocation_alert_raised
                and self.errors[kind] >= self.allocation_alert_threshold
            )
            if alert:
                self.allocation_alert_raised = True

        if alert:
            current_mem = self.get_current_memory_usage()
            self.sample_memory(current_mem)
            logger.warning(
                f"[HEALTH] {self.allocation_alert_threshold} allocation failures so far; "
                f"process memory {current_mem:.2f} MB (started at {self.initial_memory_mb:.2f} MB)"
            )

    def sample_memory(self, current_mem=None):
        current_mem = self.get_current_memory_usage() if current_mem is None else current_mem
        with self.lock:
            self.peak_memory_mb = max(self.peak_memory_mb, current_mem)
        return current_mem

    def error_counts(self):
        with self.lock:
            return {kind.value: count for kind, count in self.errors.items() if count}

    def print_final_summary(self, summary):
        """Print the end-of-crawl report. The banner line is what log wrappers look for."""
        elapsed = summary.duration_sec
        final_mem = self.sample_memory()

        print("\n" + "=" * 80)
        print(SUMMARY_BANNER)
        print("=" * 80)

        print(f"\nSEED: {summary.seed_url} (max depth {summary.max_depth}, {summary.worker_count} workers)")
        print(f"   Start Time:      {self.started_at.strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"   Total Duration:  {timedelta(seconds=int(elapsed))}")
        if summary.cancelled:
            print("   Status:          CANCELLED (remaining queued URLs discarded)")
        else:
            print("   Status:          COMPLETED")

        rows = [
            ["URLs visited (claimed)", summary.visited],
            ["Fetched successfully", summary.fetched],
            ["Non-HTML (not expanded)", self.ignored],
            ["Duplicates skipped", summary.duplicates],
            ["Re-expanded at shallower depth", summary.reexpanded],
            ["Discarded after close", summary.discarded],
            ["Errors", summary.error_count],
        ]
        print("\nURL METRICS:")
        print(tabulate(rows, headers=['Metric', 'Count'], tablefmt='grid'))

        if summary.errors:
            print("\nERRORS BY KIND:")
            print(tabulate(sorted(summary.errors.items()), headers=['Kind', 'Count'], tablefmt='grid'))

        with self.lock:
            worker_rows = [
                [name, ws['fetched'], ws['duplicates'], ws['reexpanded'], ws['failed']]
                for name, ws in sorted(self.worker_stats.items())
            ]
            total_mb = self.total_size_bytes / 1024 / 1024
            avg_fetch = self.total_fetch_time_ms / max(1, self.fetched) / 1000
        if worker_rows:
            print("\nWORKER STATISTICS:")
            print(tabulate(worker_rows, headers=['Worker', 'Fetched', 'Duplicates', 'Re-expanded', 'Failed'], tablefmt='grid'))

        print("\nDATA TRANSFER:")
        print(f"   Total Data Fetched:    {total_mb:.2f} MB")
        print(f"   Avg Fetch Time/URL:    {avg_fetch:.3f}s")
        print(f"   Crawl Speed:           {summary.fetched / max(0.001, elapsed):.2f} URLs/s")

        print("\nMEMORY:")
        print(f"   Initial Memory:        {self.initial_memory_mb:.2f} MB")
        print(f"   Final Memory:          {final_mem:.2f} MB")
        print(f"   Peak Memory:           {self.peak_memory_mb:.2f} MB")
        print("=" * 80 + "\n")
