# File: tests/test_gateway.py
"""Mongo gateway behaviour against mocked async collections (no server needed)."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import AutoReconnect, BulkWriteError, DuplicateKeyError, ServerSelectionTimeoutError

from site_graph.config import CrawlerConfig
from site_graph.crawler.models import LinkEdge, PageRecord
from site_graph.errors import ConnectionFailure, DuplicateKeyConflict
from site_graph.storage.gateway import LINKS, PAGES, MongoGateway, StoreContext

URL = "https://example.org/~owner/set/N-0.html"


@pytest.fixture()
def collections():
    return {PAGES: AsyncMock(), LINKS: AsyncMock()}


@pytest.fixture()
def mongo(collections) -> MongoGateway:
    return MongoGateway(collections)


@pytest.mark.asyncio()
async def test_ensure_indexes_creates_both_unique_indexes(mongo, collections):
    await mongo.ensure_indexes()
    pages_call = collections[PAGES].create_index.await_args
    links_call = collections[LINKS].create_index.await_args
    assert pages_call.args[0] == [("dataset", 1), ("url", 1)]
    assert pages_call.kwargs["unique"] is True
    assert links_call.args[0] == [("dataset", 1), ("from", 1), ("to", 1)]
    assert links_call.kwargs["unique"] is True


@pytest.mark.asyncio()
async def test_get_page_maps_document(mongo, collections):
    collections[PAGES].find_one.return_value = {
        "dataset": "set", "url": URL, "status": 200, "html": "<p>x</p>", "outLinks": ["a"],
    }
    record = await mongo.get_page("set", URL)
    assert record is not None
    assert record.is_complete
    assert record.out_links == ["a"]
    collections[PAGES].find_one.return_value = None
    assert await mongo.get_page("set", "missing") is None


@pytest.mark.asyncio()
async def test_insert_duplicate_raises_conflict_but_put_page_swallows_it(mongo, collections):
    collections[PAGES].insert_one.side_effect = DuplicateKeyError("E11000 duplicate key", code=11000)
    record = PageRecord("set", URL, 200, html="<p></p>")
    with pytest.raises(DuplicateKeyConflict):
        await mongo.insert_page(record)
    await mongo.put_page(record)  # no exception


@pytest.mark.asyncio()
async def test_concurrent_upsert_losing_the_race_is_swallowed(mongo, collections):
    collections[PAGES].replace_one.side_effect = DuplicateKeyError("E11000 duplicate key", code=11000)
    record = PageRecord("set", URL, 200, html="<p></p>")
    await mongo.put_page(record, upsert=True)  # no exception
    collections[PAGES].replace_one.assert_awaited_once()
    collections[PAGES].insert_one.assert_not_awaited()


@pytest.mark.asyncio()
async def test_put_page_upsert_replaces_by_key(mongo, collections):
    record = PageRecord.failure("set", URL, "HTTP 500", 500)
    await mongo.put_page(record, upsert=True)
    call = collections[PAGES].replace_one.await_args
    assert call.args[0] == {"dataset": "set", "url": URL}
    assert call.args[1]["error"] == "HTTP 500"
    assert call.args[1]["html"] is None
    assert call.kwargs["upsert"] is True
    collections[PAGES].insert_one.assert_not_awaited()


@pytest.mark.asyncio()
async def test_put_edges_swallows_duplicate_keys(mongo, collections):
    collections[LINKS].insert_many.side_effect = BulkWriteError(
        {"writeErrors": [{"index": 0, "code": 11000}], "nInserted": 1}
    )
    edges = [LinkEdge("set", URL, "a"), LinkEdge("set", URL, "b")]
    assert await mongo.put_edges(edges) == 1
    call = collections[LINKS].insert_many.await_args
    assert call.args[0] == [{"dataset": "set", "from": URL, "to": "a"}, {"dataset": "set", "from": URL, "to": "b"}]
    assert call.kwargs["ordered"] is False


@pytest.mark.asyncio()
async def test_put_edges_reraises_other_write_errors(mongo, collections):
    collections[LINKS].insert_many.side_effect = BulkWriteError(
        {"writeErrors": [{"index": 0, "code": 11000}, {"index": 1, "code": 121}], "nInserted": 0}
    )
    with pytest.raises(BulkWriteError):
        await mongo.put_edges([LinkEdge("set", URL, "a"), LinkEdge("set", URL, "b")])


@pytest.mark.asyncio()
async def test_put_edges_with_nothing_to_write(mongo, collections):
    assert await mongo.put_edges([]) == 0
    collections[LINKS].insert_many.assert_not_awaited()


@pytest.mark.asyncio()
async def test_delete_helpers_filter_by_dataset(mongo, collections):
    collections[PAGES].delete_one.return_value = MagicMock(deleted_count=1)
    collections[LINKS].delete_many.return_value = MagicMock(deleted_count=3)
    assert await mongo.delete_page("set", URL) == 1
    assert await mongo.delete_edges_from("set", URL) == 3
    collections[PAGES].delete_one.assert_awaited_with({"dataset": "set", "url": URL})
    collections[LINKS].delete_many.assert_awaited_with({"dataset": "set", "from": URL})


@pytest.mark.asyncio()
async def test_connection_errors_become_fatal(mongo, collections):
    collections[PAGES].find_one.side_effect = AutoReconnect("connection reset")
    with pytest.raises(ConnectionFailure):
        await mongo.get_page("set", URL)


def _client(ping_error=None):
    client = MagicMock()
    client.admin.command = AsyncMock(side_effect=ping_error)
    client.close = AsyncMock()
    client.get_default_database.return_value = {PAGES: AsyncMock(), LINKS: AsyncMock()}
    return client


@pytest.mark.asyncio()
async def test_store_context_connects_once_and_closes():
    client = _client()
    store = StoreContext(CrawlerConfig(), client=client)
    with pytest.raises(ConnectionFailure):
        store.gateway
    async with store:
        first = store.gateway
        assert await store.connect() is first
    client.admin.command.assert_awaited_once_with("ping")
    client.close.assert_awaited_once()


@pytest.mark.asyncio()
async def test_store_context_uses_explicit_database_name():
    client = _client()
    store = StoreContext(CrawlerConfig(database="crawl"), client=client)
    await store.connect()
    client.__getitem__.assert_called_with("crawl")
    client.get_default_database.assert_not_called()
    await store.close()


@pytest.mark.asyncio()
async def test_store_context_unreachable_server():
    client = _client(ServerSelectionTimeoutError("no servers"))
    store = StoreContext(CrawlerConfig(), client=client)
    with pytest.raises(ConnectionFailure):
        await store.connect()
