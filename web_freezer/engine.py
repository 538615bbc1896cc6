# File: web_freezer/engine.py
"""web_freezer.engine: Orchestration layer: запуск обхода, упаковка архива и статус задания."""

from __future__ import annotations

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Union
from urllib.parse import urlsplit

from aiohttp import ClientSession

from web_freezer.archive.manifest import Manifest, build_manifest
from web_freezer.archive.packager import build_archive
from web_freezer.config import CrawlConfig
from web_freezer.crawler.crawler import ArchiveCrawler, ProgressCallback
from web_freezer.crawler.models import CrawledFile, CrawlProgress, CrawlResult, JobStatus
from web_freezer.logger import logger

__all__ = ["ArchiveJobResult", "CrawlFailedError", "Engine"]

StatusCallback = Callable[[JobStatus], Union[None, Awaitable[None]]]

NO_PAGES_MESSAGE = "No pages could be crawled from this URL"


class CrawlFailedError(RuntimeError):
    """Задание завершилось без единого сохранённого файла."""


@dataclass(slots=True)
class ArchiveJobResult:
    """Итог задания: байты ZIP-архива, манифест, файлы и финальный статус."""

    archive: bytes
    manifest: Manifest
    files: List[CrawledFile] = field(default_factory=list)
    status: Optional[JobStatus] = None

    def save(self, path: Union[str, Path]) -> Path:
        output = Path(path)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(self.archive)
        return output


async def _notify(callback: Optional[Callable], payload) -> None:
    if callback is None:
        return
    outcome = callback(payload)
    if inspect.isawaitable(outcome):
        await outcome


class Engine:
    """Фасад для CLI и тестов: обход сайта, упаковка и отчёт о статусе задания."""

    def __init__(
        self,
        config: CrawlConfig,
        *,
        status_callback: Optional[StatusCallback] = None,
        progress_callback: Optional[ProgressCallback] = None,
        max_attempts: int = 2,
        session: Optional[ClientSession] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.config = config
        self.status_callback = status_callback
        self.progress_callback = progress_callback
        self.max_attempts = max_attempts
        self.session = session
        self.created_at = time.time()
        self.domain = urlsplit(config.start_url).hostname or ""

    def run(self) -> ArchiveJobResult:
        """Синхронная обёртка над :meth:`run_async`."""
        return asyncio.run(self.run_async())

    async def run_async(self) -> ArchiveJobResult:
        """Выполняет задание, повторяя его целиком до ``max_attempts`` раз."""
        await self._status("crawling")
        attempt = 0
        while True:
            attempt += 1
            try:
                result = await self._attempt()
            except Exception as exc:
                logger.error("Attempt %d/%d failed: %s", attempt, self.max_attempts, exc)
                await self._status("failed", error=str(exc))
                if attempt >= self.max_attempts:
                    raise
                logger.info("Retrying %s", self.config.start_url)
                await self._status("crawling")
                continue
            status = await self._status(
                "completed",
                progress=100,
                pages_crawled=result.manifest.pages,
                total_pages=result.manifest.pages,
            )
            result.status = status
            return result

    async def _attempt(self) -> ArchiveJobResult:
        async with ArchiveCrawler(
            self.config, session=self.session, progress=self.progress_callback
        ) as crawler:
            crawl = await crawler.crawl()
        if not crawl.files:
            raise CrawlFailedError(NO_PAGES_MESSAGE)
        return await self._package(crawl)

    async def _package(self, crawl: CrawlResult) -> ArchiveJobResult:
        manifest = build_manifest(self.domain, crawl.files, crawl.method)
        archive = build_archive(crawl.files, manifest)
        await _notify(
            self.progress_callback,
            CrawlProgress(
                stage="packaging",
                pages_discovered=crawl.pages_discovered,
                pages_downloaded=crawl.page_count,
                assets_downloaded=crawl.asset_count,
                total_assets=crawl.asset_count,
                percentage=100,
            ),
        )
        logger.info(
            "Archive ready: %d pages, %d assets, %.2f MB",
            manifest.pages, manifest.assets, manifest.total_size_mb,
        )
        return ArchiveJobResult(archive=archive, manifest=manifest, files=crawl.files)

    async def _status(self, state: str, **fields) -> JobStatus:
        status = JobStatus(
            status=state,
            url=self.config.start_url,
            created_at=self.created_at,
            **fields,
        )
        await _notify(self.status_callback, status)
        return status
