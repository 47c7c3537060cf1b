from __future__ import annotations

import shlex
import socket
import stat
import threading
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Callable, NoReturn, Optional, Tuple, Union

import paramiko

from .constants import KNOWN_HOSTS_PATH, LIST_COMMAND
from .exceptions import (
    AuthenticationError,
    CommandError,
    ConfigError,
    DialError,
    HandshakeError,
    HostKeyError,
    NotConnectedError,
    OperationError,
    ResolveError,
    SessionStateError,
    SubsystemError,
    TeardownError,
    TransferError,
)
from .logging import get_logger, redact
from .params import ConnectionParams, HostKeyPolicy, load_private_key

logger = get_logger(__name__)

LocalPath = Union[str, Path]

# Errors paramiko raises for a failed request or a dropped channel
_REMOTE_ERRORS = (OSError, EOFError, paramiko.SSHException)


class SessionState(Enum):
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    CLOSED = "closed"


class AcceptAnyPolicy(paramiko.MissingHostKeyPolicy):
    """Accept every host key without recording it"""

    def missing_host_key(self, client, hostname, key):
        logger.debug("Accepting unverified %s host key for %s", key.get_name(), hostname)


class RejectUnknownPolicy(paramiko.MissingHostKeyPolicy):
    """Reject host keys absent from the loaded known_hosts files"""

    def missing_host_key(self, client, hostname, key):
        raise HostKeyError(f"Host key for {hostname} ({key.get_name()}) is not in known_hosts")


class SecureFtp:
    """
    SFTP session facade over a paramiko SSH transport.

    - Connects lazily: nothing touches the network until ``connect``
    - Supports password and private key login
    - Any failed operation tears the whole session down
    - A closed session is terminal; create a new instance to reconnect
    - Calls are serialized by an internal lock
    - Supports ``with`` context management
    """

    def __init__(self, params: ConnectionParams) -> None:
        self.params = params
        self._ssh: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None
        self._state = SessionState.UNCONNECTED
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        p = self.params
        return f"<SecureFtp {p.user}@{p.host}:{p.port} {self._state.value}>"

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is SessionState.CONNECTED

    # --------------------
    # Connection management
    # --------------------
    def connect(self) -> None:
        """
        Open the SSH transport and the SFTP channel over it.

        Any failure leaves no live handles and closes the facade for good.

        Raises:
            SessionStateError: If already connected or closed
            ConfigError: If parameters or the private key are unusable
            ResolveError: If the host name does not resolve
            DialError: If the TCP connection fails
            AuthenticationError: If the server rejects the credentials
            HostKeyError: If the host key policy rejects the server
            HandshakeError: If SSH negotiation fails otherwise
            SubsystemError: If the SFTP subsystem cannot be opened
        """
        with self._lock:
            if self._state is not SessionState.UNCONNECTED:
                raise SessionStateError(f"Cannot connect a {self._state.value} session")
            redact(self.params.password, self.params.passphrase)
            try:
                self._ssh, self._sftp = self._open_session()
            except Exception:
                self._state = SessionState.CLOSED
                raise
            self._state = SessionState.CONNECTED
            logger.info("Connected to %s@%s:%d", self.params.user, self.params.host, self.params.port)

    def _open_session(self) -> Tuple[paramiko.SSHClient, paramiko.SFTPClient]:
        params = self.params
        params.validate()
        pkey = load_private_key(params)
        logger.debug("Connecting with %s", params.describe())

        client = paramiko.SSHClient()
        self._configure_host_keys(client)

        address = self._resolve(params.host, params.port)
        sock = self._dial(address, params.port)
        try:
            self._handshake(client, sock, pkey)
            try:
                sftp = client.open_sftp()
            except _REMOTE_ERRORS as e:
                raise SubsystemError(f"Failed to open SFTP subsystem on {params.host}: {e}") from e
        except Exception:
            client.close()
            sock.close()
            raise
        return client, sftp

    def _configure_host_keys(self, client: paramiko.SSHClient) -> None:
        policy = self.params.host_key_policy
        if policy is HostKeyPolicy.ACCEPT_ANY:
            client.set_missing_host_key_policy(AcceptAnyPolicy())
            return

        known_hosts = Path(self.params.known_hosts or KNOWN_HOSTS_PATH).expanduser()
        try:
            if policy is HostKeyPolicy.VERIFY:
                client.load_system_host_keys()
                if self.params.known_hosts:
                    client.load_host_keys(str(known_hosts))
                client.set_missing_host_key_policy(RejectUnknownPolicy())
            else:
                # AutoAddPolicy saves new keys to the last loaded host keys file
                known_hosts.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
                known_hosts.touch(mode=0o600, exist_ok=True)
                client.load_host_keys(str(known_hosts))
                client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        except OSError as e:
            raise ConfigError(f'Known hosts file "{known_hosts}": {e}') from e

    @staticmethod
    def _resolve(host: str, port: int) -> str:
        try:
            infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        except socket.gaierror as e:
            raise ResolveError(f"Cannot resolve host {host!r}: {e}") from e
        if not infos:
            raise ResolveError(f"Cannot resolve host {host!r}: no addresses")
        return infos[0][4][0]

    def _dial(self, address: str, port: int) -> socket.socket:
        try:
            return socket.create_connection((address, port), timeout=self.params.timeout)
        except OSError as e:
            raise DialError(f"Cannot connect to {address}:{port}: {e}") from e

    def _handshake(
        self,
        client: paramiko.SSHClient,
        sock: socket.socket,
        pkey: Optional[paramiko.PKey],
    ) -> None:
        params = self.params
        try:
            # sock is already connected; hostname only selects known_hosts entries
            client.connect(
                hostname=params.host,
                port=params.port,
                username=params.user,
                password=params.password or None,
                pkey=pkey,
                sock=sock,
                timeout=params.timeout,
                banner_timeout=params.timeout,
                auth_timeout=params.timeout,
                allow_agent=False,
                look_for_keys=False,
            )
        except paramiko.BadHostKeyException as e:
            raise HostKeyError(f"Host key mismatch for {params.host}: {e}") from e
        except paramiko.AuthenticationException as e:
            raise AuthenticationError(
                f"Authentication failed for {params.user}@{params.host}: {e}"
            ) from e
        except (paramiko.SSHException, OSError, EOFError) as e:
            raise HandshakeError(f"SSH negotiation with {params.host} failed: {e}") from e

    def quit(self) -> None:
        """
        Close the SFTP channel, then the transport.

        Both are closed even if the first close fails. Calling quit on a
        session that is not connected does nothing.

        Raises:
            TeardownError: If closing either handle failed
        """
        with self._lock:
            if self._state is not SessionState.CONNECTED:
                return
            logger.info("Closing session to %s", self.params.host)
            self._teardown()

    def _teardown(self) -> None:
        handles = (("sftp", self._sftp), ("ssh", self._ssh))
        self._sftp = None
        self._ssh = None
        self._state = SessionState.CLOSED

        errors = []
        for name, handle in handles:
            if handle is None:
                continue
            try:
                handle.close()
            except Exception as e:
                logger.debug("Closing %s handle failed: %s", name, e)
                errors.append(e)
        if errors:
            raise TeardownError(errors)

    def _fail(self, error: OperationError, cause: Optional[BaseException] = None) -> NoReturn:
        """Tear the session down and raise ``error``, keeping any teardown failure"""
        logger.warning("%s; closing session to %s", error, self.params.host)
        try:
            self._teardown()
        except TeardownError as e:
            error.teardown_error = e
        raise error from cause

    def _require_session(self) -> None:
        if self._state is not SessionState.CONNECTED:
            raise NotConnectedError(f"No open session ({self._state.value})")

    # --------------------
    # Operations
    # --------------------
    def list(self, path: str) -> str:
        """
        Run ``ls -al`` on ``path`` over an exec channel and return its output.

        Raises:
            CommandError: If the command cannot run or exits non-zero
        """
        with self._lock:
            self._require_session()
            command = f"{LIST_COMMAND} {shlex.quote(path)}"
            logger.debug("exec: %s", command)
            try:
                _, stdout, stderr = self._ssh.exec_command(command)
                out = stdout.read()
                err = stderr.read()
                exit_status = stdout.channel.recv_exit_status()
            except _REMOTE_ERRORS as e:
                self._fail(CommandError(f"Failed to run {command!r}: {e}"), e)

            if exit_status != 0:
                message = err.decode("utf-8", errors="replace").strip()
                self._fail(
                    CommandError(
                        f"{command!r} exited with status {exit_status}: {message}",
                        exit_status=exit_status,
                        stderr=message,
                    )
                )
            return out.decode("utf-8", errors="replace")

    def download(self, local_path: LocalPath, remote_path: str) -> int:
        """
        Copy ``remote_path`` into a newly created local file.

        Returns:
            Number of bytes transferred

        Raises:
            TransferError: If either file cannot be opened or the copy fails
        """
        with self._lock:
            self._require_session()
            try:
                sink = open(local_path, "wb")
            except OSError as e:
                self._fail(TransferError(f"Cannot create local file {local_path}: {e}"), e)
            return self._download(sink, remote_path)

    def download_to(self, sink: BinaryIO, remote_path: str) -> int:
        """
        Copy ``remote_path`` into an open binary stream.

        The stream is closed once the transfer completes or fails.
        """
        with self._lock:
            self._require_session()
            return self._download(sink, remote_path)

    def _download(self, sink: BinaryIO, remote_path: str) -> int:
        logger.debug("download: %s", remote_path)
        try:
            with sink:
                size = self._sftp.getfo(remote_path, sink)
        except Exception as e:
            self._fail(TransferError(f"Failed to download {remote_path}: {e}"), e)
        logger.debug("downloaded %d bytes from %s", size, remote_path)
        return size

    def upload(self, local_path: LocalPath, remote_path: str) -> int:
        """
        Copy a local file to ``remote_path``, creating or truncating it.

        Returns:
            Number of bytes transferred

        Raises:
            TransferError: If either file cannot be opened or the copy fails
        """
        with self._lock:
            self._require_session()
            try:
                source = open(local_path, "rb")
            except OSError as e:
                self._fail(TransferError(f"Cannot open local file {local_path}: {e}"), e)
            return self._upload(source, remote_path)

    def upload_from(self, source: BinaryIO, remote_path: str) -> int:
        """
        Copy an open binary stream to ``remote_path``.

        The stream is closed once the transfer completes or fails.
        """
        with self._lock:
            self._require_session()
            return self._upload(source, remote_path)

    def _upload(self, source: BinaryIO, remote_path: str) -> int:
        logger.debug("upload: %s", remote_path)
        try:
            with source:
                # confirm=True stats the remote file and rejects a short write
                size = self._sftp.putfo(source, remote_path, confirm=True).st_size
        except Exception as e:
            self._fail(TransferError(f"Failed to upload {remote_path}: {e}"), e)
        logger.debug("uploaded %d bytes to %s", size, remote_path)
        return size

    def mkdir(self, path: str) -> None:
        """Create a remote directory"""
        self._delegate(f"mkdir {path}", lambda sftp: sftp.mkdir(path))

    def remove(self, path: str) -> None:
        """Remove a remote file, or a directory if ``path`` is one"""

        def _remove(sftp: paramiko.SFTPClient) -> None:
            if stat.S_ISDIR(sftp.lstat(path).st_mode or 0):
                sftp.rmdir(path)
            else:
                sftp.remove(path)

        self._delegate(f"remove {path}", _remove)

    def rename(self, old_path: str, new_path: str) -> None:
        """Rename a remote file or directory"""
        self._delegate(f"rename {old_path} -> {new_path}", lambda sftp: sftp.rename(old_path, new_path))

    def symlink(self, target_path: str, link_path: str) -> None:
        """Create ``link_path`` as a symbolic link pointing at ``target_path``"""
        self._delegate(f"symlink {link_path} -> {target_path}", lambda sftp: sftp.symlink(target_path, link_path))

    def _delegate(self, description: str, call: Callable[[paramiko.SFTPClient], Any]) -> None:
        with self._lock:
            self._require_session()
            logger.debug("sftp %s", description)
            try:
                call(self._sftp)
            except _REMOTE_ERRORS as e:
                self._fail(OperationError(f"{description} failed: {e}"), e)

    # --------------------
    # Context manager
    # --------------------
    def __enter__(self) -> SecureFtp:
        if self._state is SessionState.UNCONNECTED:
            self.connect()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if exc_type is None:
            self.quit()
            return
        try:
            self.quit()
        except TeardownError as e:
            logger.warning("%s", e)

