# site_graph/crawler/link_extractor.py
"""
Link extraction for SiteGraph.

Boundary filtering is left to the caller: this module only answers
"what does the page link to".
"""
from __future__ import annotations

import logging
from typing import List
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_graph.crawler.urls import CANONICAL_SCHEME, canonicalize
from site_graph.errors import InvalidUrl

logger = logging.getLogger("SiteGraph")


def extract_links(html: str, base_url: str, scheme: str = CANONICAL_SCHEME) -> List[str]:
    """
    Return canonical absolute URLs of all ``<a href>`` targets in *html*.

    Relative hrefs are resolved against *base_url*. Order of first
    appearance is kept, duplicates are dropped, malformed hrefs are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    seen: set[str] = set()
    links: List[str] = []
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        raw = href_val.strip()
        if not raw:
            continue
        try:
            url = canonicalize(urljoin(base_url, raw), scheme)
        except (InvalidUrl, ValueError) as exc:
            logger.debug("Skipping href %r on %s: %s", raw, base_url, exc)
            continue
        if url not in seen:
            seen.add(url)
            links.append(url)
    return links
