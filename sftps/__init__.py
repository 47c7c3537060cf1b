"""
sftps - SFTP session facade over SSH

Provides a single session-oriented client for remote file work:
- Password and private key authentication (inline or file:// keys)
- Configurable host key policy (accept-any, trust-on-first-use, verify)
- Directory listing, upload, download
- Remote mkdir, remove, rename and symlink
- Session teardown on the first failed operation
"""

__version__ = "0.1.0"

from .core import (
    SecureFtp,
    SessionState,
    ConnectionParams,
    HostKeyPolicy,
    setup_logging,
    load_ssh_config,
)
from .core.exceptions import (
    SftpsError,
    ConfigError,
    ConnectionError,
    ResolveError,
    DialError,
    HandshakeError,
    AuthenticationError,
    HostKeyError,
    SubsystemError,
    SessionError,
    NotConnectedError,
    SessionStateError,
    OperationError,
    CommandError,
    TransferError,
    TeardownError,
)

__all__ = [
    # Version
    "__version__",
    # Client
    "SecureFtp",
    "SessionState",
    "ConnectionParams",
    "HostKeyPolicy",
    # Utilities
    "setup_logging",
    "load_ssh_config",
    # Errors
    "SftpsError",
    "ConfigError",
    "ConnectionError",
    "ResolveError",
    "DialError",
    "HandshakeError",
    "AuthenticationError",
    "HostKeyError",
    "SubsystemError",
    "SessionError",
    "NotConnectedError",
    "SessionStateError",
    "OperationError",
    "CommandError",
    "TransferError",
    "TeardownError",
]
