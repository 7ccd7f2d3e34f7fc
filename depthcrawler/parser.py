"""
URL extraction from HTML for the crawler.
Extracts <a href> targets in document order and resolves them against the page URL.
"""

from urllib.parse import urljoin, urlparse, urlunparse

import tldextract
from bs4 import BeautifulSoup, Tag

from depthcrawler.errors import AllocationError, ParseError

SKIPPED_PREFIXES = ('#', 'mailto:', 'tel:', 'javascript:', 'data:')

# Bundled public suffix snapshot only; never reach out to the network for it
_TLD_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())


def registered_domain(url):
    extracted = _TLD_EXTRACT(url)
    if not extracted.suffix:
        # IP addresses and bare hosts like localhost
        return extracted.domain.lower()
    return f"{extracted.domain}.{extracted.suffix}".lower()


def strip_fragment(url):
    p = urlparse(url)
    return urlunparse((p.scheme, p.netloc, p.path, p.params, p.query, ""))


class LinkExtractor:
    """
    FLOW: Parses HTML using BeautifulSoup -> Walks the tree iteratively with an explicit stack ->
    Resolves each anchor against the base URL -> Drops non-http(s) targets and, in same-site mode,
    other registered domains -> Returns URLs in document order.

    Stateless apart from configuration, so one instance is shared by all workers.
    """

    def __init__(self, same_site=False, seed_url=None):
        self.same_site = same_site
        self.site_domain = registered_domain(seed_url) if (same_site and seed_url) else None

    def extract_urls(self, html, base_url):
        try:
            soup = BeautifulSoup(html, 'html.parser')
        except MemoryError as e:
            raise AllocationError(base_url, "out of memory while parsing document") from e
        except Exception as e:
            raise ParseError(base_url, f"unparseable document: {e}") from e

        urls = []
        for href in self._iter_hrefs(soup):
            url = self._resolve(href, base_url)
            if url and self._is_allowed_url(url, base_url):
                urls.append(url)
        return urls

    @staticmethod
    def _iter_hrefs(root):
        # Pre-order walk; children are pushed reversed so they pop in document order
        stack = [root]
        while stack:
            node = stack.pop()
            if node.name == 'a':
                href = node.get('href')
                if isinstance(href, str):
                    yield href
            children = [c for c in node.children if isinstance(c, Tag)]
            stack.extend(reversed(children))

    @staticmethod
    def _resolve(href, base_url):
        href = href.strip()
        if not href or href.lower().startswith(SKIPPED_PREFIXES):
            return None
        try:
            return strip_fragment(urljoin(base_url, href))
        except ValueError:
            # e.g. malformed IPv6 netloc in a single anchor; skip it, keep the page
            return None

    def _is_allowed_url(self, url, base_url):
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return False
        if self.same_site:
            site = self.site_domain or registered_domain(base_url)
            return registered_domain(url) == site
        return True
