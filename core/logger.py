import json
import logging
import re
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

import pytz

from core.config import settings

# Venue timezone (log timestamps match the on-screen clock)
LOCAL_TZ = pytz.timezone(settings.TIMEZONE)

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"


class SensitiveDataFilter(logging.Filter):
    """Masks admin tokens, passwords and API keys before records are written."""

    PATTERNS = [
        (re.compile(r"(Bearer\s+)[A-Za-z0-9_.\-]{16,}"), r"\1***MASKED***"),
        (re.compile(r"eyJ[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}"), r"***JWT***"),
        (re.compile(r"(GEMINI_API_KEY=|AIza)[A-Za-z0-9_-]{35,}"), r"\1***MASKED***"),
        (re.compile(r"(ADMIN_PASSWORD=|JWT_SECRET=|SUPABASE_KEY=)\S+"), r"\1***MASKED***"),
        (re.compile(r"https://[a-z0-9-]+\.supabase\.co"), r"***SUPABASE_URL***"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.mask(record.msg)
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(self.mask(a) if isinstance(a, str) else a for a in record.args)
        return True

    @classmethod
    def mask(cls, text: str) -> str:
        for pattern, replacement in cls.PATTERNS:
            text = pattern.sub(replacement, text)
        return text


def _local_time(created: float) -> datetime:
    return datetime.fromtimestamp(created).astimezone(LOCAL_TZ)


class BoardFormatter(logging.Formatter):
    """Text formatter: venue-local time, then ` | key=value` context and timing."""

    def formatTime(self, record, datefmt=None):
        dt = _local_time(record.created)
        return dt.strftime(datefmt) if datefmt else dt.isoformat(timespec="milliseconds")

    def format(self, record):
        msg = super().format(record)

        context = getattr(record, "context", None)
        if context:
            msg += " | " + " | ".join(f"{k}={v}" for k, v in context.items())

        if hasattr(record, "duration_ms"):
            msg += f" | ⏱️ {record.duration_ms:.2f}ms"
        elif hasattr(record, "duration"):
            msg += f" | ⏱️ {record.duration:.2f}s"
        return msg


class JSONFormatter(logging.Formatter):
    """One JSON object per line (LOG_FORMAT=json), for the log file only."""

    def format(self, record):
        entry = {
            "timestamp": _local_time(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if hasattr(record, "duration"):
            entry["duration_seconds"] = record.duration
        if hasattr(record, "duration_ms"):
            entry["duration_ms"] = record.duration_ms
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Accepts `context=` and `duration=`/`duration_ms=` keyword arguments."""

    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        extra["context"] = kwargs.pop("context", {})
        for key in ("duration", "duration_ms"):
            if key in kwargs:
                extra[key] = kwargs.pop(key)
        return msg, kwargs


def _build_handlers(log_file: Optional[str]) -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(BoardFormatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handlers = [console]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        if settings.LOG_FORMAT.lower() == "json":
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(BoardFormatter(FILE_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handlers.append(file_handler)

    for handler in handlers:
        handler.addFilter(SensitiveDataFilter())
    return handlers


def get_logger(
    name: str,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.LoggerAdapter:
    """
    Get a configured logger with console and rotating file handlers.

    Handlers are attached once per logger name; later calls only wrap the
    existing logger in a StructuredLoggerAdapter.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        level = log_level or settings.LOG_LEVEL
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        for handler in _build_handlers(settings.LOG_FILE if log_file is None else log_file):
            logger.addHandler(handler)
        logger.propagate = False
    return StructuredLoggerAdapter(logger, {})


def setup_logging(log_level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configures the root logger so third-party loggers (uvicorn, aiohttp)
    share the console and file handlers.
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO))
    for handler in _build_handlers(settings.LOG_FILE if log_file is None else log_file):
        root.addHandler(handler)
