"""
Logging setup for the EventFlow backend.

Development logs go to the console in a readable one-line format. Production
(EVENTFLOW_ENV=production) writes one rotating JSON-lines file per logger so
the lifecycle ticks can be followed separately from request traffic.

Loggers (all under the "eventflow." namespace):
- api: HTTP handlers and application startup/shutdown
- services: attendee, event and setting services, display hub
- lifecycle: auto-start, auto-complete and lane cascades
- db: table store and change feed
- websocket: display and change channels
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional


LOGGER_NAMES = ("api", "services", "lifecycle", "db", "websocket")

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Keys: timestamp (UTC, Z suffix), level, logger, message, module,
    function, line, plus exception when exc_info is set and any
    extra_fields passed through logging's extra argument.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry = {
            "timestamp": created.replace(tzinfo=None).isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(getattr(record, "extra_fields", {}))
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    [2026-01-20 09:00:01] INFO - eventflow.lifecycle - Auto-started Keynote
    """

    def __init__(self):
        super().__init__(
            fmt="[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def _log_level() -> int:
    """EVENTFLOW_LOG_LEVEL (DEBUG, INFO, WARNING, ERROR, CRITICAL), default INFO."""
    name = os.environ.get("EVENTFLOW_LOG_LEVEL", "INFO").upper()
    return getattr(logging, name, logging.INFO)


def _is_production() -> bool:
    return os.environ.get("EVENTFLOW_ENV", "development").lower() == "production"


def _log_dir() -> Path:
    """EVENTFLOW_LOG_DIR, default ./logs; created if missing."""
    path = Path(os.environ.get("EVENTFLOW_LOG_DIR", "logs"))
    path.mkdir(parents=True, exist_ok=True)
    return path


def _build_handler(logger_name: str, level: int, log_dir: Optional[Path]) -> logging.Handler:
    if log_dir is not None:
        handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{logger_name}.log",
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setFormatter(JSONFormatter())
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ConsoleFormatter())
    handler.setLevel(level)
    return handler


def configure_logging() -> Dict[str, logging.Logger]:
    """
    (Re)configure every EventFlow logger.

    Existing handlers are replaced, so calling this twice does not
    duplicate output.

    Returns:
        Mapping of short logger name to Logger
    """
    level = _log_level()
    log_dir = _log_dir() if _is_production() else None

    loggers = {}
    for name in LOGGER_NAMES:
        logger = logging.getLogger(f"eventflow.{name}")
        logger.setLevel(level)
        logger.propagate = False
        logger.handlers.clear()
        logger.addHandler(_build_handler(name, level, log_dir))
        loggers[name] = logger
    return loggers


_loggers: Optional[Dict[str, logging.Logger]] = None


def get_logger(name: str) -> logging.Logger:
    """
    Get one of the EventFlow loggers, configuring logging on first use.

    Raises:
        ValueError: If name is not one of LOGGER_NAMES

    Example:
        >>> logger = get_logger("lifecycle")
        >>> logger.info("Cascade started", extra={"extra_fields": {"lane": "Main Hall"}})
    """
    global _loggers
    if _loggers is None:
        _loggers = configure_logging()

    if name not in _loggers:
        raise ValueError(f"Unknown logger name: {name}. Valid names: {', '.join(LOGGER_NAMES)}")
    return _loggers[name]


def init_logging() -> Dict[str, logging.Logger]:
    """Configure logging at application startup."""
    global _loggers
    _loggers = configure_logging()
    return _loggers
