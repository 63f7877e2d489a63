"""
Structured Logging Framework

This module provides the core logging infrastructure using structlog on top
of the standard logging module: a human-readable console stream and an
optional rotating JSON file for machine consumption.
"""

import json
import logging
import logging.handlers
import sys
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from ..config.schema import LoggingConfig

JSON_LOGGER_NAME = "doh_server.json"

_CONSOLE_FORMATS = {
    "simple": "%(levelname)s %(name)s: %(message)s",
    "detailed": "%(asctime)s [%(levelname)s] %(name)s (%(module)s:%(lineno)d): %(message)s",
    "structured": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
}


class JSONFileFormatter(logging.Formatter):
    """One JSON object per line, merging structured data carried by the record."""

    def format(self, record):
        log_dict: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "structured_data"):
            log_dict.update(record.structured_data)

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict, default=str)


class StructuredLogger:
    """Structured logger using structlog with console and JSON file output."""

    def __init__(self, config: LoggingConfig):
        """Initialize structured logger.

        Args:
            config: Logging configuration
        """
        self.config = config
        self._configured = False
        self._json_logger: Optional[logging.Logger] = None
        self.logger = None

    def _get_processors(self) -> List[Any]:
        """Build the structlog processor chain for the configured format."""
        processors: List[Any] = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
        ]

        if self.config.format == "structured":
            processors.append(structlog.dev.ConsoleRenderer(colors=False))
        else:
            processors.append(structlog.processors.format_exc_info)
            processors.append(structlog.processors.KeyValueRenderer(
                key_order=["event"], drop_missing=True
            ))

        return processors

    def configure(self) -> None:
        """Configure structlog with console output and optional JSON file."""
        if self._configured:
            return

        root_logger = logging.getLogger()
        root_logger.handlers.clear()

        log_level = getattr(logging, self.config.level.upper())
        root_logger.setLevel(log_level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(
            logging.Formatter(
                fmt=_CONSOLE_FORMATS[self.config.format],
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(console_handler)

        structlog.configure(
            processors=self._get_processors(),
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=False,
        )

        if self.config.file:
            self._setup_file_logging()

        self._configured = True
        self.logger = structlog.get_logger("doh_server")

    def _setup_file_logging(self) -> None:
        """Setup separate file logging with JSON format."""
        log_path = Path(self.config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        json_logger = logging.getLogger(JSON_LOGGER_NAME)
        json_logger.handlers.clear()
        json_logger.setLevel(getattr(logging, self.config.level.upper()))

        # Prevent propagation to avoid duplicate console output
        json_logger.propagate = False

        file_handler = logging.handlers.RotatingFileHandler(
            filename=self.config.file,
            maxBytes=self.config.max_size_mb * 1024 * 1024,
            backupCount=self.config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFileFormatter())
        json_logger.addHandler(file_handler)

        self._json_logger = json_logger

    def write_json(
        self, name: str, level: int, message: str, data: Dict[str, Any], exc_info=None
    ) -> None:
        """Write a structured record to the JSON file, if one is configured."""
        if self._json_logger is None:
            return

        record = logging.LogRecord(
            name=name,
            level=level,
            pathname="",
            lineno=0,
            msg=message,
            args=(),
            exc_info=exc_info,
        )
        record.structured_data = data
        self._json_logger.handle(record)

    def get_logger(self, name: str = "doh_server") -> structlog.stdlib.BoundLogger:
        """Get a structured logger instance."""
        if not self._configured:
            self.configure()

        return structlog.get_logger(name)


# Global logger instance
_logger_instance: Optional[StructuredLogger] = None


def setup_logging(config: LoggingConfig) -> StructuredLogger:
    """Setup global logging configuration."""
    global _logger_instance
    _logger_instance = StructuredLogger(config)
    _logger_instance.configure()
    return _logger_instance


def get_logger(name: str = "doh_server") -> structlog.stdlib.BoundLogger:
    """Get a logger instance.

    Raises:
        RuntimeError: If logging hasn't been configured
    """
    if _logger_instance is None:
        raise RuntimeError("Logging not configured. Call setup_logging() first.")

    return _logger_instance.get_logger(name)


def get_structured_logger() -> Optional[StructuredLogger]:
    """Return the configured StructuredLogger, if any."""
    return _logger_instance


def log_exception(
    logger: structlog.stdlib.BoundLogger, message: str, exc: Optional[BaseException] = None
) -> None:
    """Log an exception with detailed traceback information.

    Args:
        logger: Logger instance
        message: Log message
        exc: Exception instance (optional, will use current exception if None)
    """
    if exc is None:
        exc = sys.exc_info()[1]

    if exc is None:
        logger.error(message)
        return

    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    logger.error(
        message,
        exception_type=type(exc).__name__,
        exception_message=str(exc),
    )

    if _logger_instance is not None:
        _logger_instance.write_json(
            name="doh_server",
            level=logging.ERROR,
            message=message,
            data={
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
                "traceback": tb_str,
            },
        )
