# site_graph/crawler/models.py
"""
Data models for the SiteGraph crawler.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class FetchResult:
    """Successful (2xx) HTTP response body."""

    url: str
    status: int
    html: Optional[str] = None
    content_type: str = ""

    @property
    def is_html(self) -> bool:
        # servers that omit Content-Type are treated as serving markup
        return not self.content_type or "html" in self.content_type


@dataclass(slots=True)
class PageRecord:
    """One fetched (or failed) page of a dataset, unique per (dataset, url)."""

    dataset: str
    url: str
    status: int
    html: Optional[str] = None
    out_links: List[str] = field(default_factory=list)
    fetched_at: datetime = field(default_factory=utcnow)
    error: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        """Successful status with a non-empty body: nothing left to resume."""
        return 200 <= self.status < 300 and bool(self.html)

    @classmethod
    def failure(cls, dataset: str, url: str, error: str, status: int = 0) -> PageRecord:
        return cls(dataset=dataset, url=url, status=status, html=None, out_links=[], error=error)

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "dataset": self.dataset,
            "url": self.url,
            "status": self.status,
            "html": self.html,
            "outLinks": list(self.out_links),
            "fetchedAt": self.fetched_at,
        }
        if self.error is not None:
            doc["error"] = self.error
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> PageRecord:
        return cls(
            dataset=doc["dataset"],
            url=doc["url"],
            status=int(doc.get("status") or 0),
            html=doc.get("html"),
            out_links=list(doc.get("outLinks") or []),
            fetched_at=doc.get("fetchedAt") or utcnow(),
            error=doc.get("error"),
        )


@dataclass(frozen=True, slots=True)
class LinkEdge:
    """Directed link between two in-boundary pages of a dataset."""

    dataset: str
    from_url: str
    to_url: str

    def to_document(self) -> Dict[str, str]:
        return {"dataset": self.dataset, "from": self.from_url, "to": self.to_url}


@dataclass(slots=True)
class CrawlStats:
    """Счётчики одного обхода датасета."""

    dataset: str
    fetched: int = 0
    failed: int = 0
    skipped: int = 0
    dropped: int = 0
    edges: int = 0
    enqueued: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "dataset": self.dataset,
            "fetched": self.fetched,
            "failed": self.failed,
            "skipped": self.skipped,
            "dropped": self.dropped,
            "edges": self.edges,
            "enqueued": self.enqueued,
        }
