# site_graph/crawler/fetcher.py
"""
Fetcher module: HTTP GET with a bounded timeout and bounded retry/backoff.

Failures surface as :class:`~site_graph.errors.FetchFailure` carrying the HTTP
status (0 when no response arrived); the pipeline records them as page records.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from aiohttp import ClientError, ClientSession

from site_graph.config import CrawlerConfig
from site_graph.crawler.models import FetchResult
from site_graph.errors import FetchFailure

logger = logging.getLogger("SiteGraph")

RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)
MAX_BACKOFF = 60.0


class Fetcher:
    """Handles HTTP fetching with timeout and a bounded number of retries."""

    def __init__(
        self,
        session: ClientSession,
        config: CrawlerConfig,
        retry_status: Sequence[int] = RETRY_STATUS,
    ) -> None:
        self.session = session
        self.config = config
        self._retry_status = retry_status

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch *url* once, plus up to ``config.retry_times`` retries on
        transport errors, timeouts, 5xx and 429.

        Raises :class:`FetchFailure` once retries run out or the failure is
        permanent (other HTTP errors, undecodable body).
        """
        attempts = 0
        while True:
            try:
                return await self._attempt(url)
            except FetchFailure as exc:
                if not exc.retryable or attempts >= self.config.retry_times:
                    logger.warning("Failed %s: %s", url, exc)
                    raise
                attempts += 1
                # exponential backoff, cap at 60s
                backoff = min(self.config.retry_interval * 2 ** (attempts - 1), MAX_BACKOFF)
                logger.debug(
                    "Retry %d/%d for %s after %.2f s (%s)",
                    attempts, self.config.retry_times, url, backoff, exc,
                )
                await asyncio.sleep(backoff)

    async def _attempt(self, url: str) -> FetchResult:
        status = 0
        try:
            async with self.session.get(url, raise_for_status=False) as resp:
                status = resp.status
                ctype = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                text = await resp.text(errors="replace")
        except asyncio.TimeoutError as exc:
            raise FetchFailure(url, f"Timeout after {self.config.timeout:g}s", retryable=True) from exc
        except ClientError as exc:
            raise FetchFailure(url, _describe(exc), retryable=True) from exc
        except LookupError as exc:
            # unknown charset: the same body fails the same way on every attempt
            raise FetchFailure(url, _describe(exc), status) from exc

        if not 200 <= status < 300:
            raise FetchFailure(url, f"HTTP {status}", status, retryable=status in self._retry_status)
        return FetchResult(url, status, html=text, content_type=ctype)


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__
