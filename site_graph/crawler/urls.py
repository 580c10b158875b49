# site_graph/crawler/urls.py
"""
URL canonicalization and crawl boundary helpers.

Every URL that reaches the frontier, the page collection or the edge
collection passes through :func:`canonicalize` first, so string equality
on canonical URLs is page identity.
"""
from __future__ import annotations

from typing import Final
from urllib.parse import SplitResult, quote, urlsplit, urlunsplit

from site_graph.errors import InvalidUrl

__all__ = ("CANONICAL_SCHEME", "DEFAULT_OWNER_PATH", "canonicalize", "site_root", "in_boundary")

CANONICAL_SCHEME: Final[str] = "https"
DEFAULT_OWNER_PATH: Final[str] = "~avamckenney"

_ALLOWED_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https"})
_DEFAULT_PORTS: Final[dict[str, int]] = {"http": 80, "https": 443}

# characters left alone when percent-encoding; '%' keeps existing escapes intact
_PATH_SAFE: Final[str] = "/%:@!$&'()*+,;=~"
_QUERY_SAFE: Final[str] = "/?%:@!$&'()*+,;=~"


def _netloc(parts: SplitResult, source_scheme: str, scheme: str) -> str:
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None and port not in (_DEFAULT_PORTS[source_scheme], _DEFAULT_PORTS.get(scheme)):
        host = f"{host}:{port}"
    userinfo, sep, _ = parts.netloc.rpartition("@")
    return f"{userinfo}{sep}{host}"


def canonicalize(raw: str, scheme: str = CANONICAL_SCHEME) -> str:
    """
    Map an absolute URL to its canonical form.

    Fragment dropped, scheme forced to *scheme* (https unless a deployment
    serves plain http), trailing slash removed from the path (a run of
    slashes collapses fully so the function stays idempotent). Host is
    lower-cased and a default port is dropped. Path and query are
    percent-encoded the way a browser would, so ``a b.html`` and
    ``a%20b.html`` name the same page; existing escapes are kept.

    Raises :class:`InvalidUrl` for anything that is not an absolute http(s) URL.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidUrl(raw, "empty")
    try:
        parts = urlsplit(raw.strip())
        # .port validates the netloc (raises ValueError on garbage ports)
        parts.port
    except ValueError as exc:
        raise InvalidUrl(raw, str(exc)) from exc

    source_scheme = parts.scheme.lower()
    if source_scheme not in _ALLOWED_SCHEMES:
        raise InvalidUrl(raw, f"unsupported scheme {source_scheme!r}" if source_scheme else "missing scheme")
    if not parts.hostname:
        raise InvalidUrl(raw, "missing host")

    path = quote(parts.path, safe=_PATH_SAFE).rstrip("/")
    query = quote(parts.query, safe=_QUERY_SAFE)
    return urlunsplit((scheme, _netloc(parts, source_scheme, scheme), path, query, ""))


def site_root(seed: str, owner_path: str = DEFAULT_OWNER_PATH, scheme: str = CANONICAL_SCHEME) -> str:
    """Return the boundary prefix: the seed's origin plus the owner subtree."""
    parts = urlsplit(canonicalize(seed, scheme))
    owner = owner_path.strip("/")
    return f"{parts.scheme}://{parts.netloc}/{owner}/"


def in_boundary(url: str, prefix: str) -> bool:
    """Prefix test; *url* must already be canonical."""
    return url.startswith(prefix)
