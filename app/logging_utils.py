"""Minimal structured logging helper.

Emits key=value pairs (or one JSON object per line) through the stdlib
``logging`` module so records land in whatever handlers
``app.server.configure_logging`` installed.

Usage:
    from app.logging_utils import get_logger
    log = get_logger("dungeon")
    log.info(event="floor_generated", floor=3, rooms=212)
    floor_log = log.bind(floor=3)
    floor_log.warn(event="floor_skipped", reason="catalog_missing")

Non-numeric values have spaces replaced with underscores. Reserved keys: level, ts.
"""

from __future__ import annotations

import json
import logging
import os
import time

LEVELS = {"debug": logging.DEBUG, "info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}
CURRENT_LEVEL = LEVELS.get(os.getenv("CRAWLER_LOG_LEVEL", "info").lower(), logging.INFO)
JSON_MODE = os.getenv("CRAWLER_LOG_JSON", "0") in ("1", "true", "TRUE", "yes", "on")


def format_fields(level: str, json_mode: bool = False, **fields) -> str:
    if json_mode:
        rec = {k: v for k, v in fields.items() if v is not None}
        rec["level"] = level
        rec["ts"] = int(time.time())
        return json.dumps(rec, separators=(",", ":"), default=str)
    parts = [f"level={level}", f"ts={int(time.time())}"]
    for k, v in fields.items():
        if v is None:
            continue
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            parts.append(f"{k}={v}")
        else:
            s = str(v).replace(" ", "_")
            parts.append(f"{k}={s}")
    return " ".join(parts)


class StructuredLogger:
    def __init__(self, name: str | None = None, context: dict | None = None):
        self.name = name or "crawler"
        self.context = dict(context or {})
        self._logger = logging.getLogger(f"crawler.{self.name}")

    def bind(self, **fields) -> "StructuredLogger":
        """Child logger that stamps ``fields`` on every record."""
        merged = dict(self.context)
        merged.update(fields)
        return StructuredLogger(self.name, merged)

    def _log(self, lvl: str, **fields):
        threshold = LEVELS[lvl]
        if threshold < CURRENT_LEVEL:
            return
        rec = {"logger": self.name}
        rec.update(self.context)
        rec.update(fields)
        self._logger.log(threshold, format_fields(lvl, JSON_MODE, **rec))

    def debug(self, **fields):
        self._log("debug", **fields)

    def info(self, **fields):
        self._log("info", **fields)

    def warn(self, **fields):
        self._log("warn", **fields)

    def error(self, **fields):
        self._log("error", **fields)


_LOGGER_CACHE: dict[str, StructuredLogger] = {}


def get_logger(name: str) -> StructuredLogger:
    if name not in _LOGGER_CACHE:
        _LOGGER_CACHE[name] = StructuredLogger(name)
    return _LOGGER_CACHE[name]


log = get_logger("crawler")
