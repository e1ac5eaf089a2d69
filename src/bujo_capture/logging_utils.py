"""Append-only logging helpers for processed journal pages."""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from bujo_capture.config import get_settings

LOG_FILE_NAME = "processed_pages.jsonl"
LOGGER_NAME = "bujo_capture"


def _setup_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False
    return logger


LOGGER = _setup_logger()


def get_logger(name: str) -> logging.Logger:
    """Return a child of the project logger, e.g. ``bujo_capture.parser``."""

    return LOGGER.getChild(name)


def _log_path() -> Path:
    settings = get_settings()
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / LOG_FILE_NAME


def log_event(data: Mapping[str, Any]) -> None:
    """Append a JSON event to the log file and emit console output."""

    payload = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **data,
    }
    try:
        path = _log_path()
        with path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=False, default=str))
            handle.write("\n")
    except OSError:
        # Logging is best-effort; avoid breaking the pipeline.
        pass

    status = payload.get("status", "info")
    if status == "success":
        LOGGER.info(
            "Processed page | provenance=%s entries=%s dropped=%s page_date=%s image=%s",
            payload.get("provenance"),
            payload.get("entries"),
            payload.get("dropped"),
            payload.get("page_date"),
            payload.get("image"),
        )
    else:
        LOGGER.error(
            "Failed to process page | provenance=%s error=%s",
            payload.get("provenance"),
            payload.get("error"),
        )


__all__ = ["log_event", "get_logger", "LOGGER", "LOGGER_NAME"]
