"""
Structured logging for the dispatch engine.

Records are written one JSON object per line to rotating files under LOG_DIR:
- app.log   INFO and above
- error.log ERROR and above
- debug.log everything, only when LOG_LEVEL=DEBUG
With LOG_TO_CONSOLE=true, errors are also echoed to stderr in plain text.

Structured fields travel through ``extra={"extra_fields": {...}}`` and are
merged into the JSON object.
"""

import json
import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

SERVICE_NAME = "search-dispatch"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore")


class JsonFormatter(logging.Formatter):
    """One JSON line per record, with extra_fields merged at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry = {
            "timestamp": created.isoformat().replace("+00:00", "Z"),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        fields = getattr(record, "extra_fields", None)
        if isinstance(fields, dict):
            entry.update(fields)
        return json.dumps(entry, default=str)


@dataclass(frozen=True)
class LogSettings:
    log_dir: Path
    level: str
    to_console: bool

    @classmethod
    def from_env(cls) -> "LogSettings":
        return cls(
            log_dir=Path(os.getenv("LOG_DIR", "logs")),
            level=os.getenv("LOG_LEVEL", "INFO").upper(),
            to_console=os.getenv("LOG_TO_CONSOLE", "false").strip().lower() == "true",
        )


_configured = False


def _rotating(path: Path, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    return handler


def configure_logging(settings: LogSettings | None = None) -> None:
    """
    Install the JSON handlers on the root logger.

    Only the first call has an effect. Settings are read from the environment
    at that point, so LOG_DIR may be changed before anything logs.
    """
    global _configured
    if _configured:
        return

    settings = settings or LogSettings.from_env()
    settings.log_dir.mkdir(parents=True, exist_ok=True)

    handlers = [
        _rotating(settings.log_dir / "app.log", logging.INFO),
        _rotating(settings.log_dir / "error.log", logging.ERROR),
    ]
    if settings.level == "DEBUG":
        handlers.append(_rotating(settings.log_dir / "debug.log", logging.DEBUG))
    if settings.to_console:
        stderr = logging.StreamHandler(sys.stderr)
        stderr.setLevel(logging.ERROR)
        stderr.setFormatter(logging.Formatter("[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"))
        handlers.append(stderr)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, settings.level, logging.INFO))
    for handler in handlers:
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "extra_fields": {
                "log_dir": str(settings.log_dir),
                "log_level": settings.level,
                "console": settings.to_console,
            }
        },
    )


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger, configuring the handlers on first use.

    Example:
        logger = get_logger(__name__)
        logger.warning("Provider slow", extra={"extra_fields": {"provider": "serp"}})
    """
    configure_logging()
    return logging.getLogger(name)
