"""
HTTP fetching module for the crawler.
Fetches one URL per call and either returns a FetchResult or raises FetchError.
Each worker owns its own PageFetcher (and therefore its own requests.Session).
"""

import time

import requests

from depthcrawler.core import FETCH_RETRIES, REQUEST_TIMEOUT, RETRY_DELAY, USER_AGENT, logger
from depthcrawler.errors import AllocationError, FetchError
from depthcrawler.models import FetchResult

RETRYABLE_STATUSES = (429, 503)


class PageFetcher:
    """
    FLOW: Executes HTTP GET with browser-like headers and redirects followed ->
    Retries 429/503, timeouts and connection errors with exponential backoff ->
    Returns FetchResult on 2xx, raises FetchError otherwise.
    """

    def __init__(self, timeout=REQUEST_TIMEOUT, retries=FETCH_RETRIES, retry_delay=RETRY_DELAY,
                 user_agent=USER_AGENT, session=None):
        self.timeout = timeout
        self.retries = max(0, retries)
        self.retry_delay = retry_delay
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        })

    def fetch(self, url, referer=None) -> FetchResult:
        headers = {"Referer": referer} if referer else {}
        delay = self.retry_delay

        for attempt in range(self.retries + 1):
            start_time = time.time()
            try:
                r = self.session.get(url, timeout=self.timeout, headers=headers, allow_redirects=True)
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                err_type = "timeout" if isinstance(e, requests.exceptions.Timeout) else "connection error"
                if attempt < self.retries:
                    logger.warning(f"[RETRY {attempt+1}/{self.retries}] {err_type} for {url}: {e}. Waiting {delay}s...")
                    time.sleep(delay)
                    delay *= 2
                    continue
                raise FetchError(url, f"{err_type}: {e}") from e
            except requests.exceptions.RequestException as e:
                raise FetchError(url, f"request error: {e}") from e

            fetch_time_ms = int((time.time() - start_time) * 1000)

            if r.status_code in RETRYABLE_STATUSES and attempt < self.retries:
                logger.warning(f"[RETRY {attempt+1}/{self.retries}] {r.status_code} for {url}. Waiting {delay}s...")
                time.sleep(delay)
                delay *= 2
                continue

            if not 200 <= r.status_code < 300:
                raise FetchError(url, f"http error: {r.status_code}", status_code=r.status_code)

            try:
                body = r.text
            except MemoryError as e:
                raise AllocationError(url, "out of memory while decoding response body") from e

            return FetchResult(
                url=url,
                final_url=r.url or url,
                status_code=r.status_code,
                content_type=r.headers.get("Content-Type", "").lower(),
                body=body,
                fetch_time_ms=fetch_time_ms,
            )

        # Only reachable with a negative retry budget
        raise FetchError(url, "no fetch attempt made")

    def close(self):
        self.session.close()
