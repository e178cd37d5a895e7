from __future__ import annotations

import json
import logging
import os
import socket
import time as _time
from collections import deque
from datetime import datetime, timezone
from logging import Handler
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Any

from soundfly.config import settings


_STANDARD_LOG_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
}

LOG_BUFFER_MAX = 1000

_LOGGING_INITIALIZED = False


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        _dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if not settings.log_utc:
            _dt = _dt.astimezone()

        payload: dict[str, Any] = {
            "time": _dt.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "lineno": record.lineno,
            "func": record.funcName,
            "service": settings.app_name,
            "host": socket.gethostname(),
        }
        env_name = os.getenv("ENV") or os.getenv("ENVIRONMENT") or None
        if env_name:
            payload["environment"] = env_name
        # extras
        for k, v in record.__dict__.items():
            if k not in _STANDARD_LOG_KEYS and k not in payload:
                try:
                    json.dumps(v)  # ensure serializable
                    payload[k] = v
                except (TypeError, ValueError):
                    payload[k] = str(v)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class RingBufferHandler(logging.Handler):
    """Keeps the most recent records in memory for /api/logs."""

    def __init__(self, maxlen: int = LOG_BUFFER_MAX) -> None:
        super().__init__()
        self.records: deque[dict] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.records.append(
                {
                    "ts": datetime.fromtimestamp(record.created).isoformat(timespec="seconds"),
                    "level": record.levelname,
                    "name": record.name,
                    "msg": record.getMessage(),
                }
            )
        except Exception:
            self.handleError(record)

    def tail(self, limit: int) -> list[dict]:
        if limit <= 0:
            return []
        return list(self.records)[-limit:]


ring_buffer = RingBufferHandler()


def _apply_formatter_to_logger(logger_name: str, formatter: logging.Formatter) -> None:
    logger = logging.getLogger(logger_name)
    for h in logger.handlers:
        h.setFormatter(formatter)


def _file_handler(log_path: Path) -> Handler:
    if settings.log_rotation.lower() == "time":
        return TimedRotatingFileHandler(
            filename=os.fspath(log_path),
            when=settings.log_when,
            interval=int(settings.log_interval),
            backupCount=int(settings.log_backup_count),
            encoding="utf-8",
            utc=settings.log_utc,
        )
    return RotatingFileHandler(
        filename=os.fspath(log_path),
        maxBytes=int(settings.log_max_bytes),
        backupCount=int(settings.log_backup_count),
        encoding="utf-8",
    )


def init_logging() -> None:
    global _LOGGING_INITIALIZED
    if _LOGGING_INITIALIZED:
        return
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # Console: human-readable text; File: JSON (if enabled)
    text_formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    text_formatter.converter = _time.gmtime if settings.log_utc else _time.localtime  # type: ignore[assignment]

    # Stream handler (console) - ensure exactly one
    stream_handlers = [
        h for h in root.handlers if type(h) is logging.StreamHandler  # noqa: E721
    ]
    if not stream_handlers:
        sh = logging.StreamHandler()
        sh.setLevel(level)
        sh.setFormatter(text_formatter)
        root.addHandler(sh)
    else:
        stream_handlers[0].setFormatter(text_formatter)
        for h in stream_handlers[1:]:
            root.removeHandler(h)

    if ring_buffer not in root.handlers:
        root.addHandler(ring_buffer)

    if settings.log_file_enabled:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / settings.log_file_name
        if not any(getattr(h, "baseFilename", None) == os.fspath(log_path.resolve()) for h in root.handlers):
            fh = _file_handler(log_path)
            fh.setLevel(level)
            fh.setFormatter(JsonFormatter())
            root.addHandler(fh)

    # Align uvicorn formatters with the console
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        _apply_formatter_to_logger(name, text_formatter)

    _LOGGING_INITIALIZED = True
