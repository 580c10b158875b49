# site_graph/crawler/frontier.py
"""
Crawl frontier: FIFO work queue plus the per-run seen-set.
"""
from __future__ import annotations

import asyncio
from typing import AbstractSet, Iterable, Optional, Set


class Frontier:
    """
    Breadth-first queue of canonical URLs.

    A URL is marked seen when it is admitted, so it is handed out at most once
    per run whatever the outcome of processing it. Admission and removal never
    await, which makes check-and-mark atomic for asyncio workers sharing one
    frontier. The seen-set is an in-process optimisation only; the unique index
    of the page collection stays authoritative across runs.
    """

    def __init__(self, urls: Iterable[str] = ()) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._seen: Set[str] = set()
        for url in urls:
            self.enqueue(url)

    def enqueue(self, url: str) -> bool:
        """Admit *url*; returns False (no-op) if it was seen or queued before."""
        if url in self._seen:
            return False
        self._seen.add(url)
        self._queue.put_nowait(url)
        return True

    def dequeue(self) -> Optional[str]:
        """Pop the oldest pending URL, or None when the frontier is empty."""
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    async def get(self) -> str:
        """Wait for the next pending URL (worker-pool variant of :meth:`dequeue`)."""
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Block until every admitted URL has been marked done."""
        await self._queue.join()

    def is_seen(self, url: str) -> bool:
        return url in self._seen

    @property
    def seen(self) -> AbstractSet[str]:
        return frozenset(self._seen)

    def __len__(self) -> int:
        return self._queue.qsize()

    def __bool__(self) -> bool:
        return not self._queue.empty()
