"""
Rich-based logging system
"""
import logging
from typing import Optional, Set
from pathlib import Path

from rich.logging import RichHandler
from rich.console import Console
from rich.traceback import install as install_traceback


# Global console instances
_stdout_console = Console()
_stderr_console = Console(stderr=True)

# paramiko is chatty at INFO (banner, auth steps); only surface its warnings
_QUIET_LOGGERS = ("paramiko",)


class SecretFilter(logging.Filter):
    """Replace registered secrets with *** in every record a handler emits"""

    def __init__(self) -> None:
        super().__init__()
        self._secrets: Set[str] = set()

    def add(self, *values: Optional[str]) -> None:
        self._secrets.update(v for v in values if v)

    def filter(self, record: logging.LogRecord) -> bool:
        if self._secrets:
            message = record.getMessage()
            for secret in self._secrets:
                message = message.replace(secret, "***")
            record.msg, record.args = message, None
        return True


_secret_filter = SecretFilter()


def redact(*values: Optional[str]) -> None:
    """Never let these values reach a log handler"""
    _secret_filter.add(*values)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    rich_tracebacks: bool = True,
) -> None:
    """
    Setup Rich logging system.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        rich_tracebacks: Enable rich tracebacks
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if rich_tracebacks:
        install_traceback(console=_stderr_console, width=120)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers
    root_logger.handlers.clear()

    rich_handler = RichHandler(
        console=_stderr_console,
        show_time=True,
        show_path=log_level <= logging.DEBUG,
        rich_tracebacks=rich_tracebacks,
        markup=False,
        show_level=True,
    )
    rich_handler.setLevel(log_level)
    rich_handler.addFilter(_secret_filter)
    root_logger.addHandler(rich_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(log_level)
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        file_handler.addFilter(_secret_filter)
        root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def get_stdout_console() -> Console:
    """Get stdout console for user-facing output"""
    return _stdout_console


def get_stderr_console() -> Console:
    """Get stderr console for errors and logs"""
    return _stderr_console
