"""site_graph.crawler: URL canonicalization, frontier, fetching and the crawl pipeline."""

from .crawler import DatasetCrawler
from .frontier import Frontier
from .models import CrawlStats, FetchResult, LinkEdge, PageRecord
from .urls import canonicalize, in_boundary, site_root

__all__ = [
    "DatasetCrawler",
    "Frontier",
    "CrawlStats",
    "FetchResult",
    "LinkEdge",
    "PageRecord",
    "canonicalize",
    "in_boundary",
    "site_root",
]
