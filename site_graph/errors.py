# File: site_graph/errors.py
"""site_graph.errors: Иерархия исключений краулера SiteGraph."""

from __future__ import annotations

__all__ = [
    "SiteGraphError",
    "InvalidUrl",
    "UnknownDataset",
    "FetchFailure",
    "DuplicateKeyConflict",
    "ConnectionFailure",
]


class SiteGraphError(Exception):
    """Базовое исключение проекта."""


class InvalidUrl(SiteGraphError, ValueError):
    """Строка не является корректным абсолютным http(s) URL."""

    def __init__(self, raw: object, reason: str = "not an absolute http(s) URL") -> None:
        self.raw = raw
        self.reason = reason
        super().__init__(f"Invalid URL {raw!r}: {reason}")


class UnknownDataset(SiteGraphError):
    """Имя датасета отсутствует в реестре."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown dataset: {name}")


class FetchFailure(SiteGraphError):
    """Сетевая ошибка, таймаут или неуспешный HTTP-ответ.

    ``status`` равен 0, если ответ так и не был получен; ``retryable``
    говорит, имеет ли смысл повторить запрос в рамках того же запуска.
    """

    def __init__(self, url: str, message: str, status: int = 0, *, retryable: bool = False) -> None:
        self.url = url
        self.status = status
        self.retryable = retryable
        super().__init__(message)


class DuplicateKeyConflict(SiteGraphError):
    """Запись уже существует по уникальному индексу. Гасится на уровне хранилища."""


class ConnectionFailure(SiteGraphError):
    """Хранилище недоступно; фатально для всего запуска."""
