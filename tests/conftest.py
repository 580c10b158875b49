# File: tests/conftest.py
import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Dict, List, Optional, Set, Tuple

import pytest
import pytest_asyncio
from aiohttp import web

from site_graph.config import CrawlerConfig
from site_graph.crawler.models import LinkEdge, PageRecord

OWNER = "~avamckenney"
Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


class InMemoryGateway:
    """
    Stand-in for MongoGateway with the same unique keys:
    pages on (dataset, url), edges on (dataset, from, to).
    Each call yields to the loop like a real round trip.
    """

    def __init__(self) -> None:
        self.pages: Dict[Tuple[str, str], PageRecord] = {}
        self.edges: Set[Tuple[str, str, str]] = set()
        self.indexes_ensured = 0
        self.page_writes = 0

    async def ensure_indexes(self) -> None:
        await asyncio.sleep(0)
        self.indexes_ensured += 1

    async def get_page(self, dataset: str, url: str) -> Optional[PageRecord]:
        await asyncio.sleep(0)
        return self.pages.get((dataset, url))

    async def put_page(self, record: PageRecord, *, upsert: bool = False) -> None:
        await asyncio.sleep(0)
        key = (record.dataset, record.url)
        self.page_writes += 1
        if upsert or key not in self.pages:
            self.pages[key] = record

    async def delete_page(self, dataset: str, url: str) -> int:
        await asyncio.sleep(0)
        return 1 if self.pages.pop((dataset, url), None) else 0

    async def delete_edges_from(self, dataset: str, url: str) -> int:
        await asyncio.sleep(0)
        stale = {e for e in self.edges if e[0] == dataset and e[1] == url}
        self.edges -= stale
        return len(stale)

    async def put_edges(self, edges: List[LinkEdge]) -> int:
        await asyncio.sleep(0)
        inserted = 0
        for edge in edges:
            key = (edge.dataset, edge.from_url, edge.to_url)
            if key not in self.edges:
                self.edges.add(key)
                inserted += 1
        return inserted

    async def count_pages(self, dataset: str) -> int:
        return sum(1 for ds, _ in self.pages if ds == dataset)

    async def count_failed_pages(self, dataset: str) -> int:
        return sum(1 for (ds, _), rec in self.pages.items() if ds == dataset and rec.error is not None)

    async def count_edges(self, dataset: str) -> int:
        return sum(1 for e in self.edges if e[0] == dataset)

    # helpers for assertions
    def urls(self, dataset: str) -> Set[str]:
        return {url for ds, url in self.pages if ds == dataset}

    def edge_set(self, dataset: str) -> Set[Tuple[str, str]]:
        return {(f, t) for ds, f, t in self.edges if ds == dataset}

    def add_edges(self, dataset: str, pairs: List[Tuple[str, str]]) -> None:
        for f, t in pairs:
            self.edges.add((dataset, f, t))


class FakeStore:
    """Minimal StoreContext replacement around an InMemoryGateway."""

    def __init__(self, gateway: InMemoryGateway) -> None:
        self.gateway = gateway
        self.entered = 0
        self.closed = 0

    async def __aenter__(self) -> "FakeStore":
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.closed += 1


def html(*hrefs: str, status: int = 200) -> Handler:
    """Handler serving a page with one anchor per href."""
    body = "<html><body>" + "".join(f'<a href="{h}">{h}</a>' for h in hrefs) + "</body></html>"

    async def handler(_: web.Request) -> web.Response:
        return web.Response(text=body, status=status, content_type="text/html")

    return handler


@pytest.fixture()
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture()
def config() -> CrawlerConfig:
    """Config for crawling a local plain-http test server quickly."""
    return CrawlerConfig(
        mongodb_uri="mongodb://localhost:27017/site_graph_test",
        scheme="http",
        timeout=2.0,
        concurrency=4,
        retry_times=0,
        retry_interval=0.0,
        user_agent="TestAgent/1.0",
    )


@pytest_asyncio.fixture
async def serve(unused_tcp_port: int) -> AsyncIterator[Callable[[Dict[str, Handler]], Awaitable[str]]]:
    """Start an aiohttp app with the given routes; yields the base URL factory."""
    runners: List[web.AppRunner] = []

    async def _start(routes: Dict[str, Handler]) -> str:
        app = web.Application()
        for path, handler in routes.items():
            app.router.add_get(path, handler)
        runner = web.AppRunner(app, shutdown_timeout=1.0)
        await runner.setup()
        site = web.TCPSite(runner, "127.0.0.1", unused_tcp_port)
        await site.start()
        runners.append(runner)
        return f"http://127.0.0.1:{unused_tcp_port}"

    try:
        yield _start
    finally:
        for runner in runners:
            await runner.cleanup()


@pytest.fixture()
def set_path() -> Callable[[str], str]:
    """Path of a page inside the owner's test set."""
    return lambda name: f"/{OWNER}/set/{name}"
