"""
Command-line contract: argument validation, exit codes and wiring into the coordinator.
"""

import io
import signal
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import MagicMock, patch

from fakes import FakeWeb

from depthcrawler import cli
from depthcrawler.coordinator import CrawlCoordinator
from depthcrawler.errors import TerminationInvariantViolation, UsageError
from depthcrawler.models import CrawlSummary


def summary(**overrides):
    values = dict(
        seed_url="https://example.com", max_depth=2, worker_count=4, visited=3, fetched=2,
        duplicates=1, discarded=0, pending=0, cancelled=False, duration_sec=0.5,
        errors={"FETCH": 1},
    )
    values.update(overrides)
    return CrawlSummary(**values)


class TestParseArgs(unittest.TestCase):
    def test_defaults(self):
        args = cli.parse_args(["https://example.com", "2"])
        self.assertEqual(args.start_url, "https://example.com")
        self.assertEqual(args.max_depth, 2)
        self.assertEqual(args.worker_count, 4)
        self.assertFalse(args.same_site)
        self.assertIsNone(args.visited_log)

    def test_worker_count_and_options(self):
        args = cli.parse_args(["https://example.com", "0", "16", "--same-site", "--timeout", "2.5"])
        self.assertEqual(args.max_depth, 0)
        self.assertEqual(args.worker_count, 16)
        self.assertTrue(args.same_site)
        self.assertEqual(args.timeout, 2.5)

    def test_invalid_input_raises_usage_error(self):
        bad = [
            [],
            ["https://example.com"],
            ["https://example.com", "two"],
            ["https://example.com", "-1"],
            ["https://example.com", "1.5"],
            ["https://example.com", "2", "0"],
            ["https://example.com", "2", "many"],
            ["   ", "2"],
            ["https://example.com", "2", "--timeout", "0"],
        ]
        for argv in bad:
            with self.subTest(argv=argv):
                with self.assertRaises(UsageError):
                    cli.parse_args(argv)


class TestMain(unittest.TestCase):
    def test_usage_error_exits_1_before_crawling(self):
        with patch("depthcrawler.cli.CrawlCoordinator") as coordinator_cls:
            err = io.StringIO()
            with redirect_stderr(err):
                code = cli.main(["https://example.com", "-3"])
        self.assertEqual(code, cli.EXIT_USAGE)
        coordinator_cls.assert_not_called()
        self.assertIn("max-depth", err.getvalue())
        self.assertIn("usage:", err.getvalue())

    @patch("depthcrawler.cli.install_signal_handlers", return_value={})
    @patch("depthcrawler.cli.CrawlCoordinator")
    def test_successful_crawl_exits_0_even_with_fetch_errors(self, coordinator_cls, _signals):
        coordinator = coordinator_cls.return_value
        coordinator.run.return_value = summary()

        code = cli.main(["https://example.com", "2", "8", "--same-site"])

        self.assertEqual(code, cli.EXIT_OK)
        args, kwargs = coordinator_cls.call_args
        self.assertEqual(args, ("https://example.com", 2))
        self.assertEqual(kwargs["worker_count"], 8)
        self.assertTrue(kwargs["same_site"])
        self.assertIsNone(kwargs["visited_log"])
        coordinator.stats.print_final_summary.assert_called_once_with(coordinator.run.return_value)

    @patch("depthcrawler.cli.install_signal_handlers", return_value={})
    @patch("depthcrawler.cli.CrawlCoordinator")
    def test_visited_log_option(self, coordinator_cls, _signals):
        coordinator_cls.return_value.run.return_value = summary()
        cli.main(["https://example.com", "1", "--visited-log", "visited.tsv"])
        visited_log = coordinator_cls.call_args.kwargs["visited_log"]
        self.assertEqual(visited_log.path, "visited.tsv")

    @patch("depthcrawler.cli.install_signal_handlers", return_value={})
    @patch("depthcrawler.cli.CrawlCoordinator")
    def test_termination_violation_is_internal_error(self, coordinator_cls, _signals):
        coordinator_cls.return_value.run.side_effect = TerminationInvariantViolation("closed twice")
        code = cli.main(["https://example.com", "1"])
        self.assertEqual(code, cli.EXIT_INTERNAL_ERROR)
        coordinator_cls.return_value.stats.print_final_summary.assert_not_called()


class TestSignals(unittest.TestCase):
    def test_signal_requests_cancel_and_handlers_restore(self):
        coordinator = MagicMock()
        before = signal.getsignal(signal.SIGINT)
        previous = cli.install_signal_handlers(coordinator)
        try:
            handler = signal.getsignal(signal.SIGINT)
            handler(signal.SIGINT, None)
            coordinator.request_cancel.assert_called_once()
            coordinator.cancel.assert_not_called()
        finally:
            cli.restore_signal_handlers(previous)
        self.assertEqual(signal.getsignal(signal.SIGINT), before)

    def test_signal_while_main_thread_holds_crawl_locks(self):
        coordinator = CrawlCoordinator("https://example.com", 1, worker_count=1)
        previous = cli.install_signal_handlers(coordinator)
        try:
            handler = signal.getsignal(signal.SIGTERM)
            # Both locks are non-reentrant; the handler must return without touching them
            with coordinator._state_lock, coordinator.frontier._lock:
                handler(signal.SIGTERM, None)
        finally:
            cli.restore_signal_handlers(previous)
        self.assertTrue(coordinator.cancel_requested)
        self.assertFalse(coordinator.frontier.closed)


class TestSummaryOutput(unittest.TestCase):
    def _run(self, web, argv):
        out = io.StringIO()
        with patch("depthcrawler.coordinator.PageFetcher", side_effect=lambda timeout: web.fetcher()):
            with redirect_stdout(out):
                code = cli.main(argv)
        return code, out.getvalue()

    def test_real_crawl_prints_summary(self):
        web = FakeWeb({"https://example.com": []})
        code, out = self._run(web, ["https://example.com", "1", "2"])
        self.assertEqual(code, cli.EXIT_OK)
        self.assertIn("CRAWL SESSION SUMMARY", out)
        self.assertEqual(web.fetched, {"https://example.com"})

    def test_failed_page_still_exits_0(self):
        seed, a, b = "https://example.com", "https://example.com/a", "https://example.com/b"
        web = FakeWeb({seed: [a, b], a: [], b: []}, failing=[a])
        code, out = self._run(web, [seed, "2", "4"])
        self.assertEqual(code, cli.EXIT_OK)
        self.assertEqual(web.fetched, {seed, a, b})
        self.assertIn("ERRORS BY KIND", out)
        self.assertIn("FETCH", out)


if __name__ == "__main__":
    unittest.main()
