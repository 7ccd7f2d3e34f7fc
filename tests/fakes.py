"""
In-memory stand-ins for the network side of a crawl.
FakeWeb serves a fixed link graph and counts every fetch per URL.
"""

import threading
import time
from collections import Counter

from depthcrawler.errors import FetchError
from depthcrawler.models import FetchResult


def page(links):
    anchors = "".join(f'<li><a href="{u}">{u}</a></li>' for u in links)
    return f"<html><head><title>t</title></head><body><ul>{anchors}</ul></body></html>"


class FakeWeb:
    def __init__(self, links, failing=(), content_types=None, delay=0.0, delays=None):
        self.links = links
        self.failing = set(failing)
        self.content_types = content_types or {}
        self.delay = delay
        self.delays = delays or {}
        self.lock = threading.Lock()
        self.fetch_counts = Counter()
        self.clients_opened = 0
        self.clients_closed = 0

    def fetcher(self):
        with self.lock:
            self.clients_opened += 1
        return FakeFetcher(self)

    @property
    def fetched(self):
        with self.lock:
            return set(self.fetch_counts)


class FakeFetcher:
    def __init__(self, web):
        self.web = web

    def fetch(self, url, referer=None):
        web = self.web
        with web.lock:
            web.fetch_counts[url] += 1
        delay = web.delays.get(url, web.delay)
        if delay:
            time.sleep(delay)
        if url in web.failing:
            raise FetchError(url, "http error: 500", status_code=500)
        if url not in web.links:
            raise FetchError(url, "http error: 404", status_code=404)
        return FetchResult(
            url=url,
            final_url=url,
            status_code=200,
            content_type=web.content_types.get(url, "text/html; charset=utf-8"),
            body=page(web.links[url]),
            fetch_time_ms=1,
        )

    def close(self):
        with self.web.lock:
            self.web.clients_closed += 1
