"""
UserFeed Logging
================

Logging for the importer. Every component logs through a ``userfeed.<name>``
adapter that carries the owner and feed being imported, so a single run can
be followed across fetcher, parser, media resolver and scheduler output.

Console output is colored text (or JSON when structured logging is on); the
rotating log file is always JSON lines.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..config.settings import LoggingSettings


ROOT_LOGGER = "userfeed"

# Promoted to top-level keys of a JSON record
IMPORT_CONTEXT_FIELDS = ("component", "owner_id", "feed_url", "error_code")

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

QUIET_LIBRARIES = ("urllib3", "requests", "feedparser", "apscheduler")


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, import context at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = _extra_fields(record)
        for field in IMPORT_CONTEXT_FIELDS:
            if field in extra:
                entry[field] = extra.pop(field)
        if extra:
            entry["extra"] = extra

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Readable console lines tagged with the owner being imported."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, self.RESET)
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        component = getattr(record, "component", record.name)

        line = f"{color}[{clock}] {record.levelname:8}{self.RESET} {component}{self._owner_tag(record)} - {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line

    @staticmethod
    def _owner_tag(record: logging.LogRecord) -> str:
        owner_id = getattr(record, "owner_id", None)
        if owner_id is None:
            return ""
        feed_url = getattr(record, "feed_url", None)
        return f" [owner {owner_id} {feed_url}]" if feed_url else f" [owner {owner_id}]"


def setup_logger(
    name: str = ROOT_LOGGER,
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    structured: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Attach console and rotating-file handlers to a logger.

    Existing handlers are replaced, so calling this twice does not duplicate
    output.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    if console:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter() if structured else ColoredConsoleFormatter())
        logger.addHandler(handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adds the adapter's context to every record, keeping per-call extras."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger_for_component(
    component_name: str,
    owner_id: Optional[int] = None,
    feed_url: Optional[str] = None,
) -> LoggerAdapter:
    """Logger for one component, optionally bound to an owner and feed.

    Args:
        component_name: Component name, e.g. ``import_run`` or ``scheduler``
        owner_id: Feed owner the messages relate to
        feed_url: Feed URL the messages relate to
    """
    context: Dict[str, Any] = {"component": component_name}
    if owner_id is not None:
        context["owner_id"] = owner_id
    if feed_url:
        context["feed_url"] = feed_url

    return LoggerAdapter(logging.getLogger(f"{ROOT_LOGGER}.{component_name}"), context)


def configure_application_logging(settings: "LoggingSettings", level: Optional[str] = None) -> logging.Logger:
    """Configure the ``userfeed`` logger tree from the logging settings.

    Args:
        settings: Logging section of the application settings
        level: Overrides ``settings.level`` (the CLI passes DEBUG in debug mode)
    """
    logger = setup_logger(
        name=ROOT_LOGGER,
        level=level or settings.level.value,
        log_file=settings.file_path or None,
        console=settings.console_logging,
        structured=settings.structured_logging,
        max_file_size=settings.max_file_size_mb * 1024 * 1024,
        backup_count=settings.backup_count,
    )

    for library in QUIET_LIBRARIES:
        logging.getLogger(library).setLevel(logging.WARNING)

    return logger


class PerformanceLogger:
    """Times a block and logs how long it took.

    A block that raises is logged as failed; one that runs longer than
    ``warn_after`` seconds is logged as a warning.
    """

    def __init__(self, logger, operation: str, warn_after: Optional[float] = None, **context):
        self.logger = logger
        self.operation = operation
        self.warn_after = warn_after
        self.context = context
        self.duration_seconds: Optional[float] = None
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.monotonic()
        self.logger.debug(f"Starting {self.operation}", extra=dict(self.context))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration_seconds = time.monotonic() - self._started
        context = {
            **self.context,
            "duration_seconds": round(self.duration_seconds, 3),
            "success": exc_type is None,
        }

        if exc_type is not None:
            self.logger.error(f"Failed {self.operation} after {self.duration_seconds:.3f}s", extra=context)
        elif self.warn_after is not None and self.duration_seconds > self.warn_after:
            self.logger.warning(f"Slow {self.operation}: {self.duration_seconds:.3f}s", extra=context)
        else:
            self.logger.info(f"Completed {self.operation} in {self.duration_seconds:.3f}s", extra=context)
