"""Logging configuration service for the replay sync application."""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog


# Loggers of HTTP libraries, only shown at the highest verbosity
LIBRARY_LOGGERS = ("httpx", "httpcore")


def level_for_verbosity(verbosity: int) -> str:
    """Map the number of ``-v`` flags to a log level name."""
    if verbosity <= 0:
        return "INFO"
    return "DEBUG"


class LoggingService:
    """Service for configuring and managing application logging."""

    def __init__(
        self,
        verbosity: int = 0,
        log_dir: Path | None = None,
    ) -> None:
        """Initialize the logging service.

        Args:
            verbosity: Number of ``-v`` flags (0 = info, 1 = debug, 2+ = trace)
            log_dir: Directory for log files (None for console only)
        """
        self.verbosity = verbosity
        self.log_level = level_for_verbosity(verbosity)
        self.log_dir = log_dir
        self.is_development = os.getenv("ENVIRONMENT", "development") == "development"

    def configure(self) -> None:
        """Configure structlog with appropriate processors and handlers."""
        self._configure_stdlib_logging()

        structlog.configure(
            processors=self._get_processors(),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _configure_stdlib_logging(self) -> None:
        """Configure standard library logging handlers."""
        root_logger = logging.getLogger()
        root_logger.handlers.clear()

        numeric_level = getattr(logging, self.log_level, logging.INFO)
        root_logger.setLevel(numeric_level)

        # Library request tracing only at trace verbosity
        library_level = logging.DEBUG if self.verbosity >= 2 else logging.WARNING
        for name in LIBRARY_LOGGERS:
            logging.getLogger(name).setLevel(library_level)

        # Console output goes to stderr so stdout stays free for the summary
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        # structlog renders the whole line
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(console_handler)

        if self.log_dir:
            self._setup_file_logging(root_logger, numeric_level)

    def _setup_file_logging(self, root_logger: logging.Logger, level: int) -> None:
        """Set up file-based logging with rotation."""
        if not self.log_dir:
            return

        self.log_dir.mkdir(parents=True, exist_ok=True)

        file_formatter = logging.Formatter("%(message)s")

        file_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "app.log",
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8"
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "error.log",
            maxBytes=1024 * 1024,  # 1MB
            backupCount=3,
            encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(file_formatter)
        root_logger.addHandler(error_handler)

    def _get_processors(self) -> list[Any]:
        """Get the appropriate structlog processors for the environment."""
        common_processors = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

        # Files always get JSON, so the console only renders for humans without them
        if self.is_development and not self.log_dir:
            return common_processors + [
                structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
            ]
        return common_processors + [
            structlog.processors.JSONRenderer()
        ]

    def get_logger(self, name: str | None = None) -> structlog.stdlib.BoundLogger:
        """Get a configured logger instance."""
        return structlog.stdlib.get_logger(name)


def setup_logging(
    verbosity: int = 0,
    log_dir: Path | None = None,
    environment: str | None = None,
) -> LoggingService:
    """Set up application logging with the specified configuration.

    Args:
        verbosity: Number of ``-v`` flags given on the command line
        log_dir: Directory for log files (None for console only)
        environment: Environment name (development/production)

    Returns:
        Configured LoggingService instance
    """
    if environment:
        os.environ["ENVIRONMENT"] = environment

    service = LoggingService(verbosity=verbosity, log_dir=log_dir)
    service.configure()
    return service
