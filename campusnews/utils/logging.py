"""
CampusNews Logging
==================

Component loggers for the ingestion service. Records go to a rotating file
as one JSON object per line and, for operators, to a colored console.
Context passed through ``extra`` (source id, counts, error details) ends up
in the JSON ``extra`` object.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

# Everything a bare LogRecord carries; other attributes came in through `extra`
_RECORD_ATTRIBUTES = set(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

_NOISY_LIBRARIES = ("urllib3", "requests", "feedparser")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        extra = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRIBUTES}
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Short colored lines for interactive runs."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        stamp = time.strftime("%H:%M:%S", time.localtime(record.created))
        line = f"{color}{stamp} {record.levelname:<8}{self.RESET} {record.name} - {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class LoggerAdapter(logging.LoggerAdapter):
    """Merges the component context into every record's ``extra``."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


def get_logger_for_component(
    component_name: str,
    source_id: Optional[int] = None,
) -> LoggerAdapter:
    """Logger named ``campusnews.<component_name>``.

    Args:
        component_name: Component reporting (e.g. 'news_pipeline')
        source_id: News source the logger reports on, if fixed
    """
    context: Dict[str, Any] = {"component": component_name}
    if source_id is not None:
        context["source_id"] = source_id

    return LoggerAdapter(logging.getLogger(f"campusnews.{component_name}"), context)


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/campusnews.log",
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> logging.Logger:
    """Install the handlers on the ``campusnews`` logger.

    Calling it again replaces the previous handlers. The file handler always
    writes JSON; ``structured_logging`` switches the console to JSON too.
    """
    root = logging.getLogger("campusnews")
    root.setLevel(getattr(logging, log_level.upper()))
    root.handlers.clear()

    if enable_console:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(StructuredFormatter() if structured_logging else ConsoleFormatter())
        root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(StructuredFormatter())
        root.addHandler(file_handler)

    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


class PerformanceLogger:
    """Times a block and logs its outcome with the given context."""

    def __init__(self, logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self._started = 0.0

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        duration = time.perf_counter() - self._started
        context = {**self.context, "duration_seconds": round(duration, 3)}

        if exc_type is None:
            self.logger.info(f"Completed {self.operation} in {duration:.3f}s", extra=context)
        else:
            self.logger.error(f"Failed {self.operation} after {duration:.3f}s", extra=context)
