"""
Unified exception definitions
"""
from typing import Optional, Sequence


class SftpsError(Exception):
    """Base exception class"""
    pass


class ConfigError(SftpsError):
    """Parameter or credential error, raised before any session exists"""
    pass


class ConnectionError(SftpsError):
    """Transport error while establishing the session"""
    pass


class ResolveError(ConnectionError):
    """Host name could not be resolved"""
    pass


class DialError(ConnectionError):
    """TCP connection to the remote host failed"""
    pass


class HandshakeError(ConnectionError):
    """SSH negotiation failed"""
    pass


class AuthenticationError(HandshakeError):
    """Credentials rejected by the server"""
    pass


class HostKeyError(HandshakeError):
    """Server host key rejected by the host key policy"""
    pass


class SubsystemError(ConnectionError):
    """SFTP subsystem could not be opened over the transport"""
    pass


class SessionError(SftpsError):
    """Session lifecycle error"""
    pass


class NotConnectedError(SessionError):
    """Operation invoked while no session is open"""
    pass


class SessionStateError(SessionError):
    """Lifecycle transition not allowed from the current state"""
    pass


class TeardownError(SftpsError):
    """
    Closing the session failed.

    Both handles are always closed; every failure is kept in ``errors``.
    """

    def __init__(self, errors: Sequence[BaseException]):
        self.errors = list(errors)
        detail = "; ".join(f"{type(e).__name__}: {e}" for e in self.errors)
        super().__init__(f"Failed to close session: {detail}")


class OperationError(SftpsError):
    """
    Remote operation failed and the session was torn down.

    The original failure is chained as ``__cause__``. When the teardown that
    followed also failed, it is available as ``teardown_error``.
    """

    def __init__(self, message: str, teardown_error: Optional[TeardownError] = None):
        super().__init__(message)
        self.teardown_error = teardown_error

    def __str__(self) -> str:
        message = super().__str__()
        if self.teardown_error is not None:
            return f"{message} (teardown also failed: {self.teardown_error})"
        return message


class CommandError(OperationError):
    """Remote command exited with a non-zero status"""

    def __init__(
        self,
        message: str,
        exit_status: int = -1,
        stderr: str = "",
        teardown_error: Optional[TeardownError] = None,
    ):
        super().__init__(message, teardown_error=teardown_error)
        self.exit_status = exit_status
        self.stderr = stderr


class TransferError(OperationError):
    """Upload or download failed"""
    pass
