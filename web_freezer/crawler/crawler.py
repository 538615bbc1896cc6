# web_freezer/crawler/crawler.py
"""
Crawl orchestrator: discovery, page download, asset download, link rewrite.

One :class:`ArchiveCrawler` instance holds the whole state of a job (visited
set, frontiers, path table, byte budget). Frontiers are drained in batches of
``config.concurrency`` fetches; results of a batch are merged in batch order
once every fetch of the batch has settled, so shared state is only touched
between batches.
"""
from __future__ import annotations

import asyncio
import collections
import inspect
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Deque, Dict, List, Optional, Set, Union

from aiohttp import ClientSession, ClientTimeout

from web_freezer.archive.paths import PathMapper
from web_freezer.archive.rewriter import rewrite_css, rewrite_html
from web_freezer.crawler.discovery import discover_urls
from web_freezer.crawler.fetcher import SafeFetcher
from web_freezer.crawler.models import (
    CrawledFile,
    CrawlProgress,
    CrawlResult,
    DiscoveryMethod,
    FetchResult,
    FrontierEntry,
    ResourceBudget,
    Stage,
)
from web_freezer.logger import get_logger
from web_freezer.parser.css_parser import extract_css_references
from web_freezer.parser.html_parser import parse_html
from web_freezer.utils import (
    decode_text,
    encode_text,
    origin_of,
    remove_duplicates,
    strip_fragment,
)

if TYPE_CHECKING:
    from web_freezer.config import CrawlConfig

__all__ = ("ArchiveCrawler", "ProgressCallback")

ProgressCallback = Callable[[CrawlProgress], Union[None, Awaitable[None]]]

logger = get_logger("crawler")


class ArchiveCrawler:
    """Асинхронный обходчик сайта, собирающий файлы для офлайн-архива."""

    def __init__(
        self,
        config: CrawlConfig,
        *,
        session: Optional[ClientSession] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.config = config
        self.origin = origin_of(config.start_url)
        self.session = session
        self._owns_session = session is None
        self._progress = progress

        self.visited: Set[str] = set()
        self.page_frontier: Deque[FrontierEntry] = collections.deque()
        self.asset_frontier: List[str] = []
        self.files: List[CrawledFile] = []
        self.mapper = PathMapper(self.origin)
        self.budget = ResourceBudget(config.max_file_size, config.max_total_size)

        self.method: DiscoveryMethod = config.discovery_method
        self.pages_discovered = 0
        self._queued: Set[str] = set()
        self._paths: Set[str] = set()
        self._prefetched: Dict[str, Optional[FetchResult]] = {}
        self._fetcher: Optional[SafeFetcher] = None

    async def __aenter__(self) -> ArchiveCrawler:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.timeout),
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    @property
    def fetcher(self) -> SafeFetcher:
        if self.session is None:
            raise RuntimeError("Session not initialized")
        if self._fetcher is None:
            self._fetcher = SafeFetcher(
                self.session,
                max_redirects=self.config.max_redirects,
                max_body_bytes=self.config.max_file_size,
            )
        return self._fetcher

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    async def crawl(self) -> CrawlResult:
        """Run discovery and the three crawl phases; returns the rewritten files."""
        logger.info("Старт обхода: %s", self.config.start_url)
        start = time.monotonic()

        await self._emit("discovering")
        discovery = await discover_urls(self.config, self.fetcher)
        self.method = discovery.method
        self._prefetched = dict(discovery.prefetched)
        entries = discovery.entries or [FrontierEntry(strip_fragment(self.config.start_url), 0)]
        self.pages_discovered = len(entries)
        for entry in entries:
            self._enqueue_page(entry)
        logger.info("Discovery (%s): %d page URLs", self.method, len(entries))

        await self._crawl_pages()
        await self._crawl_assets()
        self._rewrite()

        duration = time.monotonic() - start
        logger.info(
            "Завершено: %d файлов (%d байт) за %.2f с",
            len(self.files), self.budget.total_bytes, duration,
        )
        if self.budget.discarded_bytes:
            logger.info("Отброшено по лимитам: %d байт", self.budget.discarded_bytes)
        return CrawlResult(
            files=self.files,
            asset_map=dict(self.mapper.asset_map),
            method=self.method,
            pages_discovered=self.pages_discovered,
        )

    # ------------------------------------------------------------------ #
    # Phase 1: pages                                                     #
    # ------------------------------------------------------------------ #

    async def _crawl_pages(self) -> None:
        while self.page_frontier and not self._pages_done():
            batch = self._take_pages()
            if not batch:
                continue
            results = await asyncio.gather(
                *(self._fetch_page(entry.url) for entry in batch), return_exceptions=True
            )
            for entry, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.warning("Page fetch crashed %s: %r", entry.url, result)
                    continue
                self._merge_page(entry, result)
            await self._emit("downloading_pages")
        self._prefetched.clear()
        logger.info("Pages: %d files, %d assets queued", len(self.files), len(self.asset_frontier))

    def _pages_done(self) -> bool:
        return len(self.files) >= self.config.max_pages or self.budget.total_reached

    def _take_pages(self) -> List[FrontierEntry]:
        batch: List[FrontierEntry] = []
        while self.page_frontier and len(batch) < self.config.concurrency:
            entry = self.page_frontier.popleft()
            if entry.url in self.visited:
                continue
            self.visited.add(entry.url)
            batch.append(entry)
        return batch

    async def _fetch_page(self, url: str) -> Optional[FetchResult]:
        if url in self._prefetched:
            return self._prefetched.pop(url)
        return await self.fetcher.fetch(url)

    def _enqueue_page(self, entry: FrontierEntry) -> None:
        if entry.url in self.visited or entry.url in self._queued:
            return
        self._queued.add(entry.url)
        self.page_frontier.append(entry)

    def _merge_page(self, entry: FrontierEntry, result: Optional[FetchResult]) -> None:
        if result is None or not result.ok:
            logger.debug("Page skipped %s (%s)", entry.url, result.status if result else "no response")
            return
        if len(self.files) >= self.config.max_pages:
            return
        self.visited.add(strip_fragment(result.url))
        if not result.is_html:
            self._store(entry.url, result)
            return

        stored = self._store(entry.url, result)
        if stored is None:
            return
        scope = self.origin if self.config.same_origin_only else None
        page = parse_html(decode_text(result.body, result.content_type), result.url, scope)
        if entry.depth + 1 <= self.config.max_depth:
            for link in page.pages:
                self._enqueue_page(FrontierEntry(link, entry.depth + 1))
        self.asset_frontier.extend(page.assets)

    # ------------------------------------------------------------------ #
    # Phase 2: assets                                                    #
    # ------------------------------------------------------------------ #

    async def _crawl_assets(self) -> None:
        queue: Deque[str] = collections.deque(
            url for url in remove_duplicates(self.asset_frontier) if url not in self.visited
        )
        self.asset_frontier = list(queue)
        logger.info("Assets: %d unique URLs to fetch", len(queue))

        while queue and not self._assets_done():
            batch = self._take_urls(queue)
            if not batch:
                continue
            results = await asyncio.gather(
                *(self.fetcher.fetch(url) for url in batch), return_exceptions=True
            )
            for url, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.warning("Asset fetch crashed %s: %r", url, result)
                    continue
                await self._merge_asset(url, result)
            await self._emit("downloading_assets", remaining=len(queue))

    def _assets_done(self) -> bool:
        return len(self.files) >= self.config.file_limit or self.budget.total_reached

    def _take_urls(self, queue: Deque[str]) -> List[str]:
        batch: List[str] = []
        while queue and len(batch) < self.config.concurrency:
            url = queue.popleft()
            if url in self.visited:
                continue
            self.visited.add(url)
            batch.append(url)
        return batch

    async def _merge_asset(self, url: str, result: Optional[FetchResult]) -> None:
        if result is None or not result.ok:
            logger.debug("Asset skipped %s (%s)", url, result.status if result else "no response")
            return
        if len(self.files) >= self.config.file_limit:
            return
        path = self._admit(url, result)
        if path is None:
            return
        file = CrawledFile(path, result.body, result.content_type, url=result.url)
        if file.is_css:
            await self._fetch_css_children(file)
        self._append(file)

    async def _fetch_css_children(self, css: CrawledFile) -> None:
        """Download resources referenced by a stylesheet (fonts, images, imports)."""
        text = decode_text(css.content, css.content_type)
        queue: Deque[str] = collections.deque(
            ref.url for ref in extract_css_references(text, css.url) if ref.url not in self.visited
        )
        while queue and not self._assets_done():
            batch = self._take_urls(queue)
            if not batch:
                continue
            results = await asyncio.gather(
                *(self.fetcher.fetch(url) for url in batch), return_exceptions=True
            )
            for url, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.warning("CSS resource fetch crashed %s: %r", url, result)
                    continue
                if result is None or not result.ok:
                    logger.debug("CSS resource skipped %s", url)
                    continue
                if len(self.files) >= self.config.file_limit:
                    continue
                self._store(url, result)

    # ------------------------------------------------------------------ #
    # Storage                                                            #
    # ------------------------------------------------------------------ #

    def _admit(self, url: str, result: FetchResult) -> Optional[str]:
        """Reserve budget and an archive path for *result*; None if it must be dropped."""
        path = self.mapper.path_for(url, result.content_type)
        if path in self._paths:
            logger.debug("Path %s already taken, %s skipped", path, url)
            return None
        if not self.budget.admit(len(result.body)):
            if self.budget.exhausted:
                logger.warning("Total size limit reached, %s dropped", url)
            else:
                logger.info("File too large (%d bytes): %s", len(result.body), url)
            return None
        self._paths.add(path)
        return self.mapper.assign(url, result.content_type)

    def _append(self, file: CrawledFile) -> None:
        self.files.append(file)
        logger.debug("Stored %s (%d bytes)", file.path, file.size)

    def _store(self, url: str, result: FetchResult) -> Optional[CrawledFile]:
        path = self._admit(url, result)
        if path is None:
            return None
        file = CrawledFile(path, result.body, result.content_type, url=result.url)
        self._append(file)
        return file

    # ------------------------------------------------------------------ #
    # Phase 3: rewrite                                                   #
    # ------------------------------------------------------------------ #

    def _rewrite(self) -> None:
        asset_map = self.mapper.asset_map
        rewritten = 0
        for file in self.files:
            if file.is_html:
                rewrite, errors = rewrite_html, "xmlcharrefreplace"
            elif file.is_css:
                rewrite, errors = rewrite_css, "replace"
            else:
                continue
            # served charset is kept, so <meta charset> and @charset stay truthful
            text = decode_text(file.content, file.content_type)
            text = rewrite(text, self.origin, file.url, file.path, asset_map)
            file.content = encode_text(text, file.content_type, errors)
            rewritten += 1
        logger.info("Rewrote links in %d files", rewritten)

    # ------------------------------------------------------------------ #
    # Progress                                                           #
    # ------------------------------------------------------------------ #

    async def _emit(self, stage: Stage, remaining: Optional[int] = None) -> None:
        if self._progress is None:
            return
        pages = sum(1 for f in self.files if f.is_html)
        if remaining is None:
            remaining = len(self.page_frontier) if stage != "downloading_assets" else 0
        total = len(self.files) + remaining
        snapshot = CrawlProgress(
            stage=stage,
            pages_discovered=self.pages_discovered,
            pages_downloaded=pages,
            assets_downloaded=len(self.files) - pages,
            total_assets=len(self.asset_frontier),
            percentage=min(95, round(len(self.files) / max(total, 1) * 100)),
        )
        outcome = self._progress(snapshot)
        if inspect.isawaitable(outcome):
            await outcome
