"""Logging setup for the review service.

Two logger trees are configured: ``reviewer`` (pipeline stages and external
clients) and ``app`` (HTTP layer). Each writes to its own file under
``LOG_DIR`` and to the console.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

LOG_DIR = Path(os.getenv("LOG_DIR", str(Path(__file__).parent.parent / "logs")))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
# Set LOG_TO_FILE=false in containers that only collect stdout
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").lower() == "true"

FILE_FORMAT = "%(asctime)s [%(name)s] [%(levelname)s] %(message)s"
CONSOLE_FORMAT = "%(asctime)s [%(name)s] %(message)s"

_configured: set[str] = set()


def setup_logger(name: str, filename: str) -> logging.Logger:
    """Attach file and console handlers to ``name`` once.

    Child loggers (``reviewer.pipeline.extractor`` etc.) propagate into it.
    """
    logger = logging.getLogger(name)
    if name in _configured:
        return logger

    level = logging.getLevelName(LOG_LEVEL)
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)
    logger.propagate = False

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    if LOG_TO_FILE:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(LOG_DIR / filename, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    _configured.add(name)
    return logger


def get_pipeline_logger() -> logging.Logger:
    return setup_logger("reviewer", "reviewer.log")


def get_api_logger() -> logging.Logger:
    return setup_logger("app", "api.log")
