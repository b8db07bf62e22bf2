"""
Logging configuration for the After-Sales Service Desk.
Provides structured logging with different levels and formats.

File handlers sit behind a QueueHandler so log writes never block the
event loop; a QueueListener performs the file I/O in a separate thread.
"""

import atexit
import logging
import logging.handlers
import queue
import sys
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel


# Global queue listener for cleanup
_queue_listener: Optional[logging.handlers.QueueListener] = None


class LogConfig(BaseModel):
    """Logging configuration settings."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    enable_file_logging: bool = True
    log_dir: str = "logs"
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    enable_console: bool = True


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    grey = "\x1b[38;21m"
    yellow = "\x1b[33;21m"
    red = "\x1b[31;21m"
    bold_red = "\x1b[31;1m"
    blue = "\x1b[34;21m"
    reset = "\x1b[0m"

    COLORS = {
        logging.DEBUG: grey,
        logging.INFO: blue,
        logging.WARNING: yellow,
        logging.ERROR: red,
        logging.CRITICAL: bold_red,
    }

    def format(self, record):
        # Work on a copy so file handlers sharing the record stay uncolored
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, self.grey)
        record.levelname = f"{color}{record.levelname}{self.reset}"
        return f"{super().format(record)}{self.reset}"


def _rotating_handler(config: LogConfig, filename: str, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        Path(config.log_dir) / filename,
        maxBytes=config.max_file_size,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    handler.setLevel(getattr(logging, config.level.upper()))
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: Optional[LogConfig] = None) -> None:
    """Setup application logging with configuration.

    - Console handler writes directly (stdout is non-blocking)
    - app.log receives everything, database.log only the SQLAlchemy and
      core.decorators loggers; both are fed through the queue listener
    """
    global _queue_listener

    if config is None:
        config = LogConfig()

    # Stop existing listener if running
    if _queue_listener:
        _queue_listener.stop()
        _queue_listener = None

    if config.enable_file_logging:
        Path(config.log_dir).mkdir(exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper()))
    root_logger.handlers.clear()

    if config.enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, config.level.upper()))
        console_handler.setFormatter(
            ColoredFormatter(
                fmt="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
                datefmt=config.date_format,
            )
        )
        root_logger.addHandler(console_handler)

    file_handlers = []

    if config.enable_file_logging:
        file_formatter = logging.Formatter(
            fmt="%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s",
            datefmt=config.date_format,
        )
        file_handlers.append(_rotating_handler(config, "app.log", file_formatter))

        db_handler = _rotating_handler(config, "database.log", file_formatter)
        db_handler.addFilter(
            lambda record: record.name.startswith(("sqlalchemy", "core.decorators"))
        )
        file_handlers.append(db_handler)

    if file_handlers:
        log_queue = queue.Queue(-1)
        root_logger.addHandler(logging.handlers.QueueHandler(log_queue))

        # respect_handler_level=True ensures only relevant logs are processed
        _queue_listener = logging.handlers.QueueListener(
            log_queue,
            *file_handlers,
            respect_handler_level=True,
        )
        _queue_listener.start()
        atexit.register(stop_queue_listener)

    from .config import settings

    sqlalchemy_logger = logging.getLogger("sqlalchemy.engine")
    if settings.performance.enable_query_logging:
        sqlalchemy_logger.setLevel(getattr(logging, config.level.upper()))
    else:
        sqlalchemy_logger.setLevel(logging.WARNING)


def stop_queue_listener() -> None:
    """Stop the queue listener gracefully.

    Called automatically on exit via atexit.
    Can also be called manually during shutdown.
    """
    global _queue_listener

    if _queue_listener:
        _queue_listener.stop()
        _queue_listener = None


class LifecycleLogger:
    """Structured logger for request lifecycle events."""

    def __init__(self, name: str = "requests"):
        self.logger = logging.getLogger(f"lifecycle.{name}")

    def request_created(self, request_number: str, department_id: int, username: str) -> None:
        self.logger.info(
            f"Request created | Number: {request_number} | "
            f"Department ID: {department_id} | By: {username}"
        )

    def status_changed(self, request_number: str, old_status: str, new_status: str, username: str) -> None:
        self.logger.info(
            f"Status changed | Number: {request_number} | "
            f"{old_status} -> {new_status} | By: {username}"
        )

    def technician_assigned(
        self,
        request_number: str,
        technician_id: int,
        previous_technician_id: Optional[int],
        username: str,
    ) -> None:
        previous = previous_technician_id if previous_technician_id is not None else "none"
        self.logger.info(
            f"Technician assigned | Number: {request_number} | "
            f"Technician ID: {technician_id} | Previous: {previous} | By: {username}"
        )

    def cost_added(self, request_number: str, amount: float, currency: str, username: str) -> None:
        self.logger.info(
            f"Cost added | Number: {request_number} | Amount: {amount} {currency} | By: {username}"
        )

    def request_closed(self, request_number: str, satisfaction: Optional[int], username: str) -> None:
        self.logger.info(
            f"Request closed | Number: {request_number} | "
            f"Satisfaction: {satisfaction if satisfaction is not None else 'n/a'} | By: {username}"
        )

    def permission_denied(self, action: str, username: str, role: str, target: Any = None) -> None:
        self.logger.warning(
            f"Permission denied | Action: {action} | User: {username} | Role: {role} | Target: {target}"
        )


# Uvicorn logging configuration used by main.py
UVICORN_LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "()": "uvicorn.logging.DefaultFormatter",
            "fmt": "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "access": {
            "()": "uvicorn.logging.AccessFormatter",
            "fmt": '%(asctime)s | %(name)s | %(levelname)s | %(client_addr)s - "%(request_line)s" %(status_code)s',
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "default": {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
        "access": {
            "formatter": "access",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
    },
}
