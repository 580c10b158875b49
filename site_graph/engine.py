# File: site_graph/engine.py
"""site_graph.engine: Оркестрация: запуск обхода одного или всех датасетов."""

from __future__ import annotations

from typing import Dict, Optional

from aiohttp import ClientSession

from site_graph.config import CrawlerConfig
from site_graph.crawler.crawler import DatasetCrawler
from site_graph.crawler.models import CrawlStats
from site_graph.logger import logger
from site_graph.registry import resolve_targets, seed_url
from site_graph.storage.gateway import MongoGateway, StoreContext

__all__ = ["crawl_dataset", "run_target"]


async def crawl_dataset(
    name: str,
    gateway: MongoGateway,
    config: CrawlerConfig,
    session: Optional[ClientSession] = None,
) -> CrawlStats:
    """
    Обходит один датасет до опустошения очереди.

    Неизвестное имя даёт UnknownDataset до любой сетевой активности;
    уникальные индексы создаются до начала обхода.
    """
    seed = seed_url(name)
    await gateway.ensure_indexes()
    async with DatasetCrawler(name, seed, gateway, config, session=session) as crawler:
        stats = await crawler.crawl()
    logger.info("Done crawling dataset: %s", name)
    return stats


async def run_target(
    target: str,
    config: CrawlerConfig,
    store: Optional[StoreContext] = None,
) -> Dict[str, CrawlStats]:
    """
    Запускает обход датасета или всех датасетов ('all') строго по очереди.

    Подключение к хранилищу создаётся один раз на весь запуск и закрывается
    в конце, даже если обход завершился ошибкой.
    """
    names = resolve_targets(target)
    store = store or StoreContext(config)
    results: Dict[str, CrawlStats] = {}
    async with store:
        for name in names:
            results[name] = await crawl_dataset(name, store.gateway, config)
    return results
