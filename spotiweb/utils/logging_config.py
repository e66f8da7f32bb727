"""
Spotiweb Logging Configuration

Routes structlog events through the standard library so that host
applications keep control of handlers:
- Console output for development
- Optional rotating log file
- Quieter third-party HTTP loggers
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import structlog

EXTERNAL_LOGGERS = ["aiohttp", "aiohttp.client", "aiohttp.access", "urllib3", "asyncio"]


class SpotiwebLogger:
    """
    Centralized logging configuration for spotiweb.

    Only touches the ``spotiweb`` logger hierarchy and the external HTTP
    loggers, never the root logger, so embedding applications keep their
    own setup.
    """

    def __init__(
        self,
        log_level: str = "INFO",
        enable_console: bool = True,
        log_file: Optional[str] = None,
        json_output: bool = False,
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ):
        """
        Initialize the logging system.

        Args:
            log_level: Level for spotiweb loggers
            enable_console: Whether to log to stdout
            log_file: Path of a rotating log file (optional)
            json_output: Render events as JSON instead of key=value text
            max_file_size: Maximum size per log file before rotation
            backup_count: Number of backup files to keep
        """
        self.log_level = getattr(logging, log_level.upper())
        self.enable_console = enable_console
        self.log_file = Path(log_file) if log_file else None
        self.json_output = json_output
        self.max_file_size = max_file_size
        self.backup_count = backup_count

        self.package_logger = logging.getLogger("spotiweb")
        self._setup_logging()

    def _setup_logging(self):
        """Configure the complete logging system."""
        self._configure_structlog()

        self.package_logger.handlers.clear()
        self.package_logger.setLevel(self.log_level)
        self.package_logger.propagate = False

        if self.enable_console:
            self.package_logger.addHandler(self._create_console_handler())
        if self.log_file:
            self.package_logger.addHandler(self._create_rotating_file_handler())

        external_level = logging.INFO if self.log_level == logging.DEBUG else logging.WARNING
        for name in EXTERNAL_LOGGERS:
            logging.getLogger(name).setLevel(external_level)

    def _configure_structlog(self):
        """Configure structlog for stdlib-backed structured logging."""
        shared_processors = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

        structlog.configure(
            processors=shared_processors + [
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _renderer(self, colors: bool):
        if self.json_output:
            return structlog.processors.JSONRenderer()
        return structlog.dev.ConsoleRenderer(colors=colors)

    def _create_console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(self.log_level)
        handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=self._renderer(colors=True)))
        return handler

    def _create_rotating_file_handler(self) -> logging.handlers.RotatingFileHandler:
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            filename=self.log_file,
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        handler.setLevel(self.log_level)
        handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=self._renderer(colors=False)))
        return handler

    def get_logger(self, name: str) -> structlog.stdlib.BoundLogger:
        """Get a structured logger for a specific component."""
        return structlog.get_logger(name)


# Global logger instance
_logger_instance: Optional[SpotiwebLogger] = None


def setup_logging(
    log_level: str = "INFO",
    enable_console: bool = True,
    log_file: Optional[str] = None,
    **kwargs
) -> SpotiwebLogger:
    """
    Setup the global logging configuration.

    Args:
        log_level: Level for spotiweb loggers
        enable_console: Whether to log to stdout
        log_file: Path of a rotating log file (optional)
        **kwargs: Additional arguments for SpotiwebLogger

    Returns:
        Configured logger instance
    """
    global _logger_instance

    _logger_instance = SpotiwebLogger(
        log_level=log_level,
        enable_console=enable_console,
        log_file=log_file,
        **kwargs
    )

    return _logger_instance


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for a specific component.

    Raises:
        RuntimeError: If logging hasn't been setup
    """
    if _logger_instance is None:
        raise RuntimeError("Logging not setup. Call setup_logging() first.")

    return _logger_instance.get_logger(name)
