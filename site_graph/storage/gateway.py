# site_graph/storage/gateway.py
"""
Persistence gateway: page and edge records in MongoDB.

Two collections, both partitioned by ``dataset``:

* ``pages``: ``{dataset, url, status, html, outLinks, fetchedAt, error?}``,
  unique on ``(dataset, url)``;
* ``links``: ``{dataset, from, to}``, unique on ``(dataset, from, to)``.

The unique indexes are the authority on one-record-per-key. Duplicate-key
errors are therefore expected (reruns, concurrent writers) and are swallowed
here; they never reach the crawler.
"""
from __future__ import annotations

import functools
import logging
from types import TracebackType
from typing import Any, Awaitable, Callable, Iterable, Optional, Type, TypeVar

from pymongo import ASCENDING, AsyncMongoClient
from pymongo.errors import BulkWriteError, ConfigurationError, DuplicateKeyError, PyMongoError
from pymongo.errors import ConnectionFailure as MongoConnectionFailure

from site_graph.config import CrawlerConfig
from site_graph.crawler.models import LinkEdge, PageRecord
from site_graph.errors import ConnectionFailure, DuplicateKeyConflict

__all__ = ["PAGES", "LINKS", "MongoGateway", "StoreContext"]

logger = logging.getLogger("SiteGraph")

PAGES = "pages"
LINKS = "links"
DEFAULT_DATABASE = "site_graph"
_DUPLICATE_KEY = 11000

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def _connection_guard(func: F) -> F:
    """Re-raise driver connection errors as the project's fatal ConnectionFailure."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except MongoConnectionFailure as exc:
            raise ConnectionFailure(f"MongoDB unavailable during {func.__name__}: {exc}") from exc

    return wrapper  # type: ignore[return-value]


def _only_duplicates(exc: BulkWriteError) -> bool:
    errors = (exc.details or {}).get("writeErrors", [])
    return bool(errors) and all(err.get("code") == _DUPLICATE_KEY for err in errors)


class MongoGateway:
    """Page/edge operations over an already connected database handle."""

    def __init__(self, database: Any) -> None:
        self.db = database

    @property
    def pages(self) -> Any:
        return self.db[PAGES]

    @property
    def links(self) -> Any:
        return self.db[LINKS]

    @_connection_guard
    async def ensure_indexes(self) -> None:
        """Create both unique indexes if absent (idempotent)."""
        await self.pages.create_index(
            [("dataset", ASCENDING), ("url", ASCENDING)], unique=True, name="dataset_url_unique"
        )
        await self.links.create_index(
            [("dataset", ASCENDING), ("from", ASCENDING), ("to", ASCENDING)],
            unique=True,
            name="dataset_from_to_unique",
        )

    @_connection_guard
    async def get_page(self, dataset: str, url: str) -> Optional[PageRecord]:
        doc = await self.pages.find_one({"dataset": dataset, "url": url}, {"_id": 0})
        return PageRecord.from_document(doc) if doc else None

    @_connection_guard
    async def insert_page(self, record: PageRecord) -> None:
        """Plain insert; raises :class:`DuplicateKeyConflict` if the key exists."""
        try:
            await self.pages.insert_one(record.to_document())
        except DuplicateKeyError as exc:
            raise DuplicateKeyConflict(f"page {record.dataset}:{record.url} already stored") from exc

    @_connection_guard
    async def put_page(self, record: PageRecord, *, upsert: bool = False) -> None:
        """
        Store *record* in one write.

        ``upsert=True`` replaces whatever is stored under (dataset, url);
        otherwise the record is inserted and an existing one wins.
        """
        if upsert:
            try:
                await self.pages.replace_one(
                    {"dataset": record.dataset, "url": record.url}, record.to_document(), upsert=True
                )
            except DuplicateKeyError:
                # two concurrent upserts on the same key: the other one won
                logger.debug("Concurrent upsert lost for %s", record.url)
            return
        try:
            await self.insert_page(record)
        except DuplicateKeyConflict as exc:
            logger.debug("%s", exc)

    @_connection_guard
    async def delete_page(self, dataset: str, url: str) -> int:
        result = await self.pages.delete_one({"dataset": dataset, "url": url})
        return result.deleted_count

    @_connection_guard
    async def delete_edges_from(self, dataset: str, url: str) -> int:
        result = await self.links.delete_many({"dataset": dataset, "from": url})
        return result.deleted_count

    @_connection_guard
    async def put_edges(self, edges: Iterable[LinkEdge]) -> int:
        """Bulk insert, unordered; duplicates are skipped. Returns rows inserted."""
        docs = [edge.to_document() for edge in edges]
        if not docs:
            return 0
        try:
            result = await self.links.insert_many(docs, ordered=False)
        except BulkWriteError as exc:
            if not _only_duplicates(exc):
                raise
            inserted = int((exc.details or {}).get("nInserted", 0))
            logger.debug("Skipped %d duplicate edges", len(docs) - inserted)
            return inserted
        return len(result.inserted_ids)

    @_connection_guard
    async def count_pages(self, dataset: str) -> int:
        return await self.pages.count_documents({"dataset": dataset})

    @_connection_guard
    async def count_failed_pages(self, dataset: str) -> int:
        return await self.pages.count_documents({"dataset": dataset, "error": {"$exists": True}})

    @_connection_guard
    async def count_edges(self, dataset: str) -> int:
        return await self.links.count_documents({"dataset": dataset})


class StoreContext:
    """
    Процесс-широкое подключение к MongoDB.

    Создаётся явно раннером, подключается один раз, передаётся во все
    компоненты, работающие с хранилищем, и закрывается в конце процесса.
    """

    def __init__(self, config: CrawlerConfig, client: Any = None) -> None:
        self.config = config
        self._client = client
        self._gateway: Optional[MongoGateway] = None

    @property
    def gateway(self) -> MongoGateway:
        if self._gateway is None:
            raise ConnectionFailure("DB not connected")
        return self._gateway

    async def connect(self) -> MongoGateway:
        if self._gateway is not None:
            return self._gateway
        if self._client is None:
            try:
                self._client = AsyncMongoClient(
                    self.config.mongodb_uri, tz_aware=True, serverSelectionTimeoutMS=5000
                )
            except (ConfigurationError, ValueError) as exc:
                raise ConnectionFailure(f"Bad MongoDB URI: {exc}") from exc
        try:
            await self._client.admin.command("ping")
        except PyMongoError as exc:
            raise ConnectionFailure(f"Cannot connect to MongoDB: {exc}") from exc
        self._gateway = MongoGateway(self._database())
        logger.info("Connected to the database.")
        return self._gateway

    def _database(self) -> Any:
        if self.config.database:
            return self._client[self.config.database]
        try:
            return self._client.get_default_database(default=DEFAULT_DATABASE)
        except ConfigurationError:
            return self._client[DEFAULT_DATABASE]

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
        self._client = None
        self._gateway = None

    async def __aenter__(self) -> StoreContext:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()
