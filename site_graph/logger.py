# site_graph/logger.py
"""Логирование SiteGraph.

Все модули пишут в логгер ``SiteGraph`` (через :data:`logger` или
``logging.getLogger("SiteGraph")``); CLI настраивает его один раз через
:func:`init_logging`: консоль (stderr, чтобы не мешать JSON в stdout) и,
по желанию, файл с ротацией.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME = "SiteGraph"

logger: logging.Logger = logging.getLogger(LOGGER_NAME)


def init_logging(level: Union[int, str] = "INFO", log_file: Union[str, Path, None] = None) -> logging.Logger:
    """Заменяет обработчики логгера SiteGraph и возвращает его."""
    formatter = logging.Formatter(LOG_FORMAT)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is not None:
        # 5 MB x 3 archives
        rotating = RotatingFileHandler(str(log_file), maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8")
        rotating.setFormatter(formatter)
        logger.addHandler(rotating)

    logger.setLevel(level)
    logger.propagate = False
    return logger


__all__ = ["logger", "init_logging"]
