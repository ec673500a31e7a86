"""Application logger: JSON lines to a rotating file, readable text to stdout."""

from __future__ import annotations

import gzip
import json
import logging
import os
import shutil
import sys
import time
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

DEFAULT_LOG_FILE = "./log/app.log"
MAX_SIZE_BYTES = 10 * 1024 * 1024
MAX_BACKUPS = 3
MAX_AGE_DAYS = 14


def _fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = getattr(record, "fields", None)
    return dict(fields) if isinstance(fields, dict) else {}


def _stack(record: logging.LogRecord) -> str:
    return record.stack_info or "".join(traceback.format_stack()).rstrip("\n")


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "level": record.levelname.lower(),
            "ts": record.created,
            "caller": f"{record.filename}:{record.lineno}",
            "msg": record.getMessage(),
            **_fields(record),
        }
        if record.levelno >= logging.WARNING:
            entry["stacktrace"] = _stack(record)
        return json.dumps(entry, ensure_ascii=False, default=str)


class _ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        parts = [
            self.formatTime(record),
            record.levelname,
            f"{record.filename}:{record.lineno}",
            record.getMessage(),
        ]
        fields = _fields(record)
        if fields:
            parts.append(json.dumps(fields, ensure_ascii=False, default=str))
        line = "\t".join(parts)
        if record.levelno >= logging.WARNING:
            line += "\n" + _stack(record)
        return line


def _gzip_rotate(source: str, dest: str) -> None:
    if os.path.exists(source):
        with open(source, "rb") as src, gzip.open(dest, "wb") as dst:
            shutil.copyfileobj(src, dst)
        os.remove(source)


class _RotatingHandler(RotatingFileHandler):
    """Rotates by size, gzips backups and drops those older than the age limit."""

    def doRollover(self) -> None:
        super().doRollover()
        base = Path(self.baseFilename)
        cutoff = time.time() - MAX_AGE_DAYS * 86400
        for backup in base.parent.glob(base.name + ".*.gz"):
            if backup.stat().st_mtime < cutoff:
                backup.unlink(missing_ok=True)


def new_logger(debug: bool = False, log_file: str | os.PathLike[str] = DEFAULT_LOG_FILE) -> logging.Logger:
    """Return a logger writing JSON to a rotating ``log_file`` and text to stdout.

    Structured values are passed as ``extra={"fields": {...}}``.
    """
    level = logging.DEBUG if debug else logging.INFO
    logger = logging.getLogger("carbonstats")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
    logger.propagate = False

    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = _RotatingHandler(
        str(path), maxBytes=MAX_SIZE_BYTES, backupCount=MAX_BACKUPS, encoding="utf-8"
    )
    file_handler.namer = lambda name: name + ".gz"
    file_handler.rotator = _gzip_rotate
    file_handler.setFormatter(_JsonFormatter())

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(_ConsoleFormatter())

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    return logger