# web_freezer/crawler/discovery.py
"""
URL discovery: sitemap parsing with fallback to bounded breadth-first link
traversal.

Both strategies return a :class:`DiscoveryResult` whose entries seed the
page frontier of the orchestrator.
"""
from __future__ import annotations

import collections
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Deque, Dict, List, Optional, Set

from web_freezer.crawler.fetcher import SafeFetcher
from web_freezer.crawler.models import DiscoveryMethod, FetchResult, FrontierEntry
from web_freezer.logger import get_logger
from web_freezer.parser.html_parser import parse_html
from web_freezer.parser.sitemap_parser import parse_sitemap
from web_freezer.utils import (
    decode_text,
    is_http_url,
    is_same_origin,
    origin_of,
    remove_duplicates,
    strip_fragment,
)

if TYPE_CHECKING:
    from web_freezer.config import CrawlConfig

logger = get_logger("discovery")

SITEMAP_PATHS = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap.xml.gz")


@dataclass(slots=True)
class DiscoveryResult:
    """Ordered page URLs plus the method that actually produced them."""

    entries: List[FrontierEntry] = field(default_factory=list)
    method: DiscoveryMethod = "link_discovery"
    prefetched: Dict[str, Optional[FetchResult]] = field(default_factory=dict)

    @property
    def urls(self) -> List[str]:
        return [e.url for e in self.entries]


class SitemapDiscovery:
    """Reads ``sitemap.xml`` / ``sitemap_index.xml`` / ``sitemap.xml.gz``."""

    def __init__(self, fetcher: SafeFetcher, config: CrawlConfig) -> None:
        self.fetcher = fetcher
        self.config = config
        self.origin = origin_of(config.start_url)

    async def discover(self) -> List[str]:
        for path in SITEMAP_PATHS:
            sitemap_url = f"{self.origin}{path}"
            result = await self.fetcher.fetch(sitemap_url)
            if result is None or not result.ok:
                logger.debug("No sitemap at %s", sitemap_url)
                continue
            document = parse_sitemap(result.body)
            if document is None:
                logger.debug("Unparseable sitemap at %s", sitemap_url)
                continue
            if document.kind == "sitemapindex":
                locations = await self._expand_index(document.locations)
            else:
                locations = document.locations
            logger.info("Sitemap %s: %d locations", sitemap_url, len(locations))
            return self._filter(locations)
        return []

    async def _expand_index(self, children: List[str]) -> List[str]:
        locations: List[str] = []
        for child in children:
            if not is_http_url(child):
                continue
            result = await self.fetcher.fetch(child)
            if result is None or not result.ok:
                logger.debug("Child sitemap unavailable: %s", child)
                continue
            document = parse_sitemap(result.body)
            if document is not None and document.kind == "urlset":
                locations.extend(document.locations)
        return locations

    def _filter(self, locations: List[str]) -> List[str]:
        urls = [strip_fragment(loc) for loc in locations if is_http_url(loc)]
        if self.config.same_origin_only:
            urls = [u for u in urls if is_same_origin(u, self.origin)]
        return remove_duplicates(urls)[: self.config.max_pages]


class LinkDiscovery:
    """Breadth-first traversal bounded by ``max_depth`` and ``max_pages``."""

    def __init__(self, fetcher: SafeFetcher, config: CrawlConfig) -> None:
        self.fetcher = fetcher
        self.config = config
        self.origin = origin_of(config.start_url)
        self.prefetched: Dict[str, Optional[FetchResult]] = {}

    async def discover(self) -> List[FrontierEntry]:
        start = strip_fragment(self.config.start_url)
        queue: Deque[FrontierEntry] = collections.deque([FrontierEntry(start, 0)])
        visited: Set[str] = set()
        order: List[FrontierEntry] = []

        while queue and len(visited) < self.config.max_pages:
            entry = queue.popleft()
            if entry.url in visited or entry.depth > self.config.max_depth:
                continue
            visited.add(entry.url)
            order.append(entry)

            result = await self.fetcher.fetch(entry.url)
            # failures included; the page phase reuses every outcome
            self.prefetched[entry.url] = result
            if result is None or not result.ok or not result.is_html:
                continue
            if entry.depth >= self.config.max_depth:
                continue
            scope = self.origin if self.config.same_origin_only else None
            page = parse_html(decode_text(result.body, result.content_type), result.url, scope)
            for link in page.pages:
                if link in visited:
                    continue
                queue.append(FrontierEntry(link, entry.depth + 1))

        logger.info("Link discovery: %d URLs (max_depth=%d)", len(order), self.config.max_depth)
        return order


async def discover_urls(config: CrawlConfig, fetcher: SafeFetcher) -> DiscoveryResult:
    """Run the configured discovery method, falling back to link discovery."""
    if config.discovery_method == "sitemap":
        urls = await SitemapDiscovery(fetcher, config).discover()
        if urls:
            return DiscoveryResult(entries=[FrontierEntry(u, 0) for u in urls], method="sitemap")
        logger.info("No usable sitemap for %s, falling back to link discovery", config.start_url)

    links = LinkDiscovery(fetcher, config)
    entries = await links.discover()
    return DiscoveryResult(entries=entries, method="link_discovery", prefetched=links.prefetched)


__all__ = [
    "DiscoveryResult",
    "LinkDiscovery",
    "SitemapDiscovery",
    "discover_urls",
    "SITEMAP_PATHS",
]
