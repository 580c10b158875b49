# File: site_graph/report.py
"""site_graph.report: Сводка по сохранённым датасетам и её JSON-отчёт."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Iterable, List, Union

from site_graph.storage.gateway import MongoGateway

__all__ = ["DatasetSummary", "summarize_dataset", "as_rows", "render_json"]


@dataclass(slots=True)
class DatasetSummary:
    """Сколько страниц, неудачных загрузок и рёбер хранится для датасета."""

    dataset: str
    pages: int
    failed: int
    edges: int

    @property
    def complete(self) -> int:
        return self.pages - self.failed


async def summarize_dataset(gateway: MongoGateway, dataset: str) -> DatasetSummary:
    """Считает записи датасета в хранилище."""
    return DatasetSummary(
        dataset=dataset,
        pages=await gateway.count_pages(dataset),
        failed=await gateway.count_failed_pages(dataset),
        edges=await gateway.count_edges(dataset),
    )


def as_rows(summaries: Iterable[DatasetSummary]) -> List[dict[str, Any]]:
    return [{**asdict(s), "complete": s.complete} for s in summaries]


def render_json(
    summaries: Iterable[DatasetSummary], output_path: Union[str, Path], *, pretty: bool = True
) -> Path:
    """
    Сохраняет сводку в JSON по указанному пути и возвращает Path файла.
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as f:
        json.dump(as_rows(summaries), f, ensure_ascii=False, indent=2 if pretty else None)
    return output
