"""Logging configuration for PlayedYet."""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

ENVIRONMENT_VARIABLE = "PLAYEDYET_ENV"
APP_LOG_FILE = "playedyet.log"
ERROR_LOG_FILE = "error.log"

# Libraries that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


class LoggingService:
    """Configures structlog on top of the standard library logging tree."""

    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: Path | None = None,
        tui_mode: bool = False,
    ) -> None:
        """Initialize the logging service.

        Args:
            log_level: The minimum log level to capture
            log_dir: Directory for log files (None for console only)
            tui_mode: If True, disable console logging to avoid corrupting the TUI
        """
        self.log_level = log_level.upper()
        self.log_dir = log_dir
        self.tui_mode = tui_mode
        self.is_development = os.getenv(ENVIRONMENT_VARIABLE, "development") == "development"
        self._error_handler: logging.Handler | None = None

    @property
    def numeric_level(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)

    def configure(self) -> None:
        """Install handlers on the root logger and configure structlog."""
        root_logger = logging.getLogger()
        root_logger.handlers.clear()

        if not self.tui_mode:
            root_logger.addHandler(self._console_handler())

        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            root_logger.addHandler(self._rotating_handler(self.log_dir, APP_LOG_FILE, 2 * 1024 * 1024, 3))
            self._error_handler = self._rotating_handler(self.log_dir, ERROR_LOG_FILE, 1024 * 1024, 2)
            root_logger.addHandler(self._error_handler)

        self._apply_level()

        structlog.configure(
            processors=self._get_processors(),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def set_level(self, log_level: str) -> None:
        """Change the minimum level after configuration.

        The error log keeps its ERROR threshold.
        """
        self.log_level = log_level.upper()
        self._apply_level()

    def _apply_level(self) -> None:
        level = self.numeric_level
        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        for handler in root_logger.handlers:
            if handler is self._error_handler:
                handler.setLevel(max(level, logging.ERROR))
            else:
                handler.setLevel(level)

        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))

    def _console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        if self.is_development:
            handler.setFormatter(
                logging.Formatter(
                    fmt="%(asctime)s [%(levelname)8s] %(name)s: %(message)s",
                    datefmt="%H:%M:%S",
                )
            )
        else:
            handler.setFormatter(logging.Formatter("%(message)s"))
        return handler

    def _rotating_handler(self, log_dir: Path, filename: str, max_bytes: int, backup_count: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            filename=log_dir / filename,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        return handler

    def _get_processors(self) -> list[Any]:
        """Get the structlog processor chain for the environment."""
        common_processors: list[Any] = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

        # Files always get JSON so they stay machine readable
        if self.is_development and not self.log_dir:
            return common_processors + [structlog.dev.ConsoleRenderer(colors=True)]
        return common_processors + [structlog.processors.JSONRenderer()]

    def get_logger(self, name: str | None = None) -> structlog.stdlib.BoundLogger:
        return structlog.stdlib.get_logger(name)


def setup_logging(
    log_level: str = "INFO",
    log_dir: Path | None = None,
    environment: str | None = None,
    tui_mode: bool = False,
) -> LoggingService:
    """Set up application logging.

    Args:
        log_level: Minimum log level to capture
        log_dir: Directory for log files (None for console only)
        environment: Environment name (development/production)
        tui_mode: If True, disable console logging to avoid corrupting the TUI

    Returns:
        Configured LoggingService instance
    """
    if environment:
        os.environ[ENVIRONMENT_VARIABLE] = environment

    service = LoggingService(log_level=log_level, log_dir=log_dir, tui_mode=tui_mode)
    service.configure()
    return service
