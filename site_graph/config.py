# === FILE: site_graph/config.py ===
"""
Модуль для загрузки и валидации конфигурации краулера SiteGraph.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResumeStrategy(str, Enum):
    """Как повторный запуск обходится с уже сохранёнными страницами."""

    STRICT = "strict"
    UPSERT = "upsert"


class CrawlerConfig(BaseModel):
    """Конфигурация одного запуска краулера."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    mongodb_uri: str = Field(
        "mongodb://localhost:27017/site_graph", min_length=1, description="URI подключения к MongoDB."
    )
    database: Optional[str] = Field(
        None, description="Имя базы; по умолчанию берётся из URI, затем 'site_graph'."
    )
    owner_path: str = Field("~avamckenney", min_length=1, description="Сегмент пути владельца.")
    scheme: Literal["https", "http"] = Field(
        "https", description="Протокол канонических URL (сайт отдаётся по https)."
    )
    timeout: float = Field(20.0, gt=0, description="Таймаут на один запрос (секунд).")
    concurrency: int = Field(10, ge=1, description="Число одновременных запросов.")
    retry_times: int = Field(1, ge=0, le=10, description="Число повторных попыток в рамках запуска.")
    retry_interval: float = Field(1.0, ge=0, description="Базовая пауза перед повтором (секунд).")
    user_agent: str = Field("SiteGraphBot/1.0", min_length=1, description="Заголовок User-Agent.")
    resume_strategy: ResumeStrategy = Field(
        ResumeStrategy.STRICT, description="strict: докачка неудачных; upsert: перезапись всего."
    )

    @field_validator("owner_path", mode="before")
    def _strip_slashes(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip("/")
        return v


_DEFAULT_CFG = Path("configs/default.yaml")
_ENV_URI = "MONGODB_URI"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def _read_file(path: Path) -> dict[str, Any]:
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _read_yaml(path)
    if suffix == ".json":
        return _read_json(path)
    raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")


def load_config(path: Union[str, Path, None] = None) -> CrawlerConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект CrawlerConfig.

    Без явного пути используется configs/default.yaml, а если его нет,
    значения по умолчанию. Явно указанный, но отсутствующий файл даёт
    FileNotFoundError. Переменная окружения MONGODB_URI (в том числе из .env)
    имеет приоритет над файлом.
    """
    load_dotenv(find_dotenv(usecwd=True))
    data: dict[str, Any] = {}
    if path is None:
        if _DEFAULT_CFG.is_file():
            data = _read_file(_DEFAULT_CFG)
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))
        data = _read_file(path_obj)

    env_uri = os.environ.get(_ENV_URI)
    if env_uri:
        data["mongodb_uri"] = env_uri

    return CrawlerConfig(**data)
