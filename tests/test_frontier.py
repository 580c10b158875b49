# File: tests/test_frontier.py
import asyncio

import pytest

from site_graph.crawler.frontier import Frontier


def test_fifo_order_and_empty():
    frontier = Frontier(["a", "b"])
    frontier.enqueue("c")
    assert [frontier.dequeue(), frontier.dequeue(), frontier.dequeue()] == ["a", "b", "c"]
    assert frontier.dequeue() is None
    assert not frontier


def test_enqueue_is_noop_for_queued_or_seen_urls():
    frontier = Frontier()
    assert frontier.enqueue("a") is True
    assert frontier.enqueue("a") is False  # still queued
    assert frontier.dequeue() == "a"
    assert frontier.enqueue("a") is False  # seen this run
    assert len(frontier) == 0
    assert frontier.is_seen("a")
    assert frontier.seen == {"a"}


@pytest.mark.asyncio()
async def test_concurrent_workers_never_claim_the_same_url():
    frontier = Frontier()
    claimed: list[str] = []

    async def worker() -> None:
        while True:
            url = await frontier.get()
            try:
                claimed.append(url)
                await asyncio.sleep(0)
                # every page links to every other page
                for i in range(20):
                    frontier.enqueue(f"u{i}")
            finally:
                frontier.task_done()

    frontier.enqueue("u0")
    workers = [asyncio.create_task(worker()) for _ in range(5)]
    await asyncio.wait_for(frontier.join(), timeout=5)
    for w in workers:
        w.cancel()
    await asyncio.gather(*workers, return_exceptions=True)

    assert sorted(claimed) == sorted(f"u{i}" for i in range(20))
