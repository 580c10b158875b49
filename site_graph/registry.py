# File: site_graph/registry.py
"""site_graph.registry: Реестр датасетов: имя датасета и его seed-страница."""

from __future__ import annotations

from types import MappingProxyType
from typing import List, Mapping

from site_graph.errors import UnknownDataset

__all__ = ["ALL", "DATASETS", "seed_url", "resolve_targets"]

ALL = "all"

DATASETS: Mapping[str, str] = MappingProxyType(
    {
        "tinyfruits": "https://people.scs.carleton.ca/~avamckenney/tinyfruits/N-0.html",
        "fruits100": "https://people.scs.carleton.ca/~avamckenney/fruits100/N-0.html",
        "fruitsA": "https://people.scs.carleton.ca/~avamckenney/fruitsA/N-0.html",
        "fruitgraph": "https://people.scs.carleton.ca/~avamckenney/fruitgraph/N-0.html",
    }
)


def seed_url(name: str) -> str:
    """Возвращает seed URL датасета или бросает UnknownDataset."""
    try:
        return DATASETS[name]
    except KeyError:
        raise UnknownDataset(name) from None


def resolve_targets(target: str) -> List[str]:
    """Разворачивает 'all' в список всех датасетов в порядке регистрации."""
    if target == ALL:
        return list(DATASETS)
    seed_url(target)
    return [target]
