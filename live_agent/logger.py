import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from sqlalchemy.exc import SQLAlchemyError

from .config import Settings

if TYPE_CHECKING:
    from .store import SegmentStore

# Kept outside the "live_agent" hierarchy so that fallback records never reach
# the database handler again
FALLBACK_LOGGER_NAME = "logsink.fallback"


def setup_logging(settings: Settings) -> None:
    """Configure logging with both file and console handlers"""
    # Create logs directory if it doesn't exist
    log_path = Path(settings.logging.file_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # Create formatters and handlers
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    # File handler with rotation
    file_handler = RotatingFileHandler(
        settings.logging.file_path,
        maxBytes=settings.logging.max_size_mb * 1024 * 1024,  # Convert MB to bytes
        backupCount=settings.logging.backup_count,
    )
    file_handler.setFormatter(formatter)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.logging.level.upper()))

    # Remove any existing handlers and add our new ones
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name"""
    return logging.getLogger(name)


class LogSink:
    """Best-effort writer of operational log entries to the log table.

    Write failures are reported on the console fallback logger and never
    raised to the caller.
    """

    def __init__(self, store: "SegmentStore") -> None:
        self.store = store
        self.fallback = logging.getLogger(FALLBACK_LOGGER_NAME)

    def write(self, level: str, content: str, time: Optional[str] = None) -> bool:
        try:
            self.store.write_log(level, content, time=time)
        except SQLAlchemyError as e:
            self.fallback.error(f"Write bot log to database failed: {e}\nLog: [{level}] {content}")
            return False
        return True


class DatabaseLogHandler(logging.Handler):
    """Forward log records to a LogSink."""

    def __init__(self, sink: LogSink, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        try:
            content = self.format(record)
        except Exception:
            self.handleError(record)
            return
        self.sink.write(record.levelname, content)


def attach_database_handler(sink: LogSink, level: str = "INFO") -> DatabaseLogHandler:
    """Persist records of the live_agent loggers at or above `level`."""
    handler = DatabaseLogHandler(sink, getattr(logging, level.upper()))
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    package_logger = logging.getLogger("live_agent")
    for existing in list(package_logger.handlers):
        if isinstance(existing, DatabaseLogHandler):
            package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    return handler
