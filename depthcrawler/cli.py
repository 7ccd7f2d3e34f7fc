"""
Command-line entry point: crawl <start-url> <max-depth> [worker-count]
Parses arguments, configures logging, wires SIGINT/SIGTERM to cancellation, runs one crawl
and prints the summary.
"""

import argparse
import logging
import signal
import sys
import threading

from depthcrawler.coordinator import CrawlCoordinator
from depthcrawler.core import DEFAULT_WORKERS, REQUEST_TIMEOUT, logger, setup_logger
from depthcrawler.errors import TerminationInvariantViolation, UsageError
from depthcrawler.storage import VisitedLog

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_INTERNAL_ERROR = 70


class CrawlArgumentParser(argparse.ArgumentParser):
    """argparse exits with status 2 on bad input; the crawler reports usage errors as UsageError instead."""

    def error(self, message):
        raise UsageError(message)


def start_url(value):
    value = value.strip()
    if not value:
        raise argparse.ArgumentTypeError("start-url must be a non-empty string")
    return value


def max_depth(value):
    try:
        depth = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"max-depth must be an integer, got {value!r}")
    if depth < 0:
        raise argparse.ArgumentTypeError(f"max-depth must be >= 0, got {depth}")
    return depth


def worker_count(value):
    try:
        count = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"worker-count must be an integer, got {value!r}")
    if count < 1:
        raise argparse.ArgumentTypeError(f"worker-count must be a positive integer, got {count}")
    return count


def positive_float(value):
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got {number}")
    return number


def build_parser():
    parser = CrawlArgumentParser(
        prog="crawl",
        description="Bounded-depth concurrent web crawler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  crawl https://example.com 2                # depth 2, 4 workers
  crawl https://example.com 3 16             # depth 3, 16 workers
  crawl https://example.com 1 --same-site    # stay on example.com
        """
    )
    parser.add_argument('start_url', metavar='start-url', type=start_url, help='URL to start crawling from')
    parser.add_argument('max_depth', metavar='max-depth', type=max_depth,
                        help='maximum number of link hops from the start URL (>= 0)')
    parser.add_argument('worker_count', metavar='worker-count', type=worker_count, nargs='?',
                        default=DEFAULT_WORKERS, help=f'number of worker threads (default: {DEFAULT_WORKERS})')
    parser.add_argument('--timeout', type=positive_float, default=REQUEST_TIMEOUT,
                        help=f'per-request timeout in seconds (default: {REQUEST_TIMEOUT})')
    parser.add_argument('--same-site', action='store_true',
                        help="only follow links on the start URL's registered domain")
    parser.add_argument('--visited-log', metavar='PATH', help='append every fetched URL to this file')
    parser.add_argument('--log-file', metavar='PATH', help='also write log output to this file')
    parser.add_argument('--verbose', '-v', action='store_true', help='enable debug logging')
    return parser


def parse_args(argv=None):
    """Raises UsageError on malformed input."""
    return build_parser().parse_args(argv)


def install_signal_handlers(coordinator):
    """Route SIGINT/SIGTERM to a cancellation request. Returns the previous handlers for restoring."""
    if threading.current_thread() is not threading.main_thread():
        return {}

    def signal_handler(signum, frame):
        # Runs on the main thread between bytecodes; it must not take any crawl lock
        coordinator.request_cancel()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, signal_handler)
    return previous


def restore_signal_handlers(previous):
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def main(argv=None):
    try:
        args = parse_args(argv)
    except UsageError as e:
        parser = build_parser()
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return EXIT_USAGE

    setup_logger(log_file=args.log_file, level=logging.DEBUG if args.verbose else logging.INFO)

    coordinator = CrawlCoordinator(
        args.start_url,
        args.max_depth,
        worker_count=args.worker_count,
        visited_log=VisitedLog(args.visited_log) if args.visited_log else None,
        same_site=args.same_site,
        timeout=args.timeout,
    )

    previous = install_signal_handlers(coordinator)
    try:
        summary = coordinator.run()
    except TerminationInvariantViolation as e:
        logger.critical(f"Internal error, termination protocol broken: {e}")
        return EXIT_INTERNAL_ERROR
    finally:
        restore_signal_handlers(previous)

    coordinator.stats.print_final_summary(summary)
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
