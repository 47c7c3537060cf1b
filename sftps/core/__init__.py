"""
Core infrastructure layer
"""
from .client import SecureFtp, SessionState
from .params import ConnectionParams, HostKeyPolicy, load_private_key
from .constants import *
from .exceptions import *
from .logging import setup_logging, get_logger, get_stdout_console, get_stderr_console, redact
from .interfaces import ConnectionFactory
from .utils import load_ssh_config, format_size

__all__ = [
    "SecureFtp",
    "SessionState",
    "ConnectionParams",
    "HostKeyPolicy",
    "load_private_key",
    "setup_logging",
    "get_logger",
    "get_stdout_console",
    "get_stderr_console",
    "redact",
    "ConnectionFactory",
    "load_ssh_config",
    "format_size",
]
