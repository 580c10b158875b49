# === FILE: site_graph/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, List, Optional, Tuple

from aiohttp import ClientSession, ClientTimeout
from pymongo.errors import PyMongoError

from site_graph.config import CrawlerConfig, ResumeStrategy
from site_graph.crawler.fetcher import Fetcher
from site_graph.crawler.frontier import Frontier
from site_graph.crawler.link_extractor import extract_links
from site_graph.crawler.models import CrawlStats, FetchResult, LinkEdge, PageRecord
from site_graph.crawler.urls import canonicalize, in_boundary, site_root
from site_graph.errors import FetchFailure
from site_graph.storage.gateway import MongoGateway

__all__ = ("DatasetCrawler", "DROPPED", "SKIPPED", "FAILED", "DONE")

DROPPED = "dropped"
SKIPPED = "skipped"
FAILED = "failed"
DONE = "done"


class DatasetCrawler:
    """
    Асинхронный краулер одного датасета: обход в ширину от seed-страницы
    в пределах поддерева владельца с записью страниц и рёбер в хранилище.
    """

    def __init__(
        self,
        dataset: str,
        seed: str,
        gateway: MongoGateway,
        config: CrawlerConfig,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.dataset = dataset
        self.seed = canonicalize(seed, config.scheme)
        self.prefix = site_root(self.seed, config.owner_path, config.scheme)
        self.gateway = gateway
        self.config = config
        self.frontier = Frontier()
        self.stats = CrawlStats(dataset)
        self.logger = logging.getLogger("SiteGraph")
        self.session = session
        self._owns_session = session is None
        self._fetcher: Optional[Fetcher] = None
        self._url_locks: Dict[str, asyncio.Lock] = {}

    async def __aenter__(self) -> DatasetCrawler:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.timeout),
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            )
        self._fetcher = Fetcher(self.session, self.config)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    @property
    def fetcher(self) -> Fetcher:
        if self._fetcher is None:
            raise RuntimeError("Session not initialized")
        return self._fetcher

    @property
    def upsert(self) -> bool:
        return self.config.resume_strategy is ResumeStrategy.UPSERT

    async def crawl(self) -> CrawlStats:
        """Drain the frontier from the seed; returns the run counters."""
        self.logger.info("Старт обхода %s: %s (граница %s)", self.dataset, self.seed, self.prefix)
        start = time.monotonic()
        # the seed goes through the same boundary check as everything else
        if self.frontier.enqueue(self.seed):
            self.stats.enqueued += 1

        workers = [asyncio.create_task(self._worker()) for _ in range(self.config.concurrency)]
        drained = asyncio.create_task(self.frontier.join())
        try:
            await asyncio.wait([drained, *workers], return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (drained, *workers):
                task.cancel()
            results = await asyncio.gather(drained, *workers, return_exceptions=True)

        # a worker only finishes early when processing raised
        for result in results[1:]:
            if isinstance(result, Exception):
                raise result

        duration = time.monotonic() - start
        self.logger.info(
            "Завершено %s: %d страниц, %d ошибок, %d пропущено, %d рёбер за %.2f с",
            self.dataset, self.stats.fetched, self.stats.failed, self.stats.skipped,
            self.stats.edges, duration,
        )
        return self.stats

    async def _worker(self) -> None:
        while True:
            try:
                url = await self.frontier.get()
            except asyncio.CancelledError:
                break
            try:
                await self.process(url)
            finally:
                self.frontier.task_done()

    async def process(self, url: str) -> str:
        """
        Run one dequeued URL through the pipeline.

        Returns the terminal state: ``dropped``, ``skipped``, ``failed`` or ``done``.
        A skipped page still feeds its stored out-links to the frontier, so a
        rerun reaches failed pages that sit behind already finished ones.
        """
        if not in_boundary(url, self.prefix):
            self.logger.debug("Вне границы, пропуск: %s", url)
            self.stats.dropped += 1
            return DROPPED

        lock = self._url_locks.setdefault(url, asyncio.Lock())
        try:
            async with lock:
                finished = None if self.upsert else await self._resume_state(url)
                if finished is not None:
                    self.stats.skipped += 1
                    outcome, out_links = SKIPPED, finished.out_links
                else:
                    outcome, out_links = await self._fetch_and_record(url)
        finally:
            # the frontier admits a URL once per run, so nobody else waits on it
            self._url_locks.pop(url, None)

        for link in out_links:
            if link != url and in_boundary(link, self.prefix) and self.frontier.enqueue(link):
                self.stats.enqueued += 1
        return outcome

    async def _fetch_and_record(self, url: str) -> Tuple[str, List[str]]:
        try:
            result = await self.fetcher.fetch(url)
        except FetchFailure as exc:
            await self._store_page(PageRecord.failure(self.dataset, url, str(exc), exc.status))
            self.stats.failed += 1
            return FAILED, []

        try:
            out_links = self._discover(url, result)
        except Exception as exc:
            self.logger.warning("Extraction failed for %s: %s", url, exc)
            await self._store_page(
                PageRecord.failure(self.dataset, url, f"Extraction failed: {exc}", result.status)
            )
            self.stats.failed += 1
            return FAILED, []

        await self._store_page(
            PageRecord(self.dataset, url, result.status, html=result.html, out_links=out_links)
        )
        self.stats.fetched += 1
        await self._store_edges(url, [to for to in out_links if to != url])
        return DONE, out_links

    async def _resume_state(self, url: str) -> Optional[PageRecord]:
        """
        Strict resume: return the stored record if the page is already complete.

        A failed record is deleted together with its outgoing edges so the page
        is retried as if new.
        """
        prior = await self.gateway.get_page(self.dataset, url)
        if prior is None:
            return None
        if prior.is_complete:
            self.logger.debug("Уже загружено: %s", url)
            return prior
        removed = await self.gateway.delete_edges_from(self.dataset, url)
        await self.gateway.delete_page(self.dataset, url)
        self.logger.info("Повтор после ошибки (%s): %s, удалено рёбер: %d", prior.error, url, removed)
        return None

    def _discover(self, url: str, result: FetchResult) -> List[str]:
        if result.status != 200 or not result.is_html or not result.html:
            return []
        links = extract_links(result.html, url, self.config.scheme)
        return [link for link in links if in_boundary(link, self.prefix)]

    async def _store_page(self, record: PageRecord) -> None:
        await self.gateway.put_page(record, upsert=self.upsert)

    async def _store_edges(self, url: str, targets: List[str]) -> None:
        edges = [LinkEdge(self.dataset, url, to) for to in targets]
        try:
            self.stats.edges += await self.gateway.put_edges(edges)
        except PyMongoError as exc:
            # destinations are still enqueued by the caller
            self.logger.error("Edge write failed for %s: %s", url, exc)
