"""
Connection parameters and private key resolution
"""
from __future__ import annotations

import io
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import paramiko

from .constants import (
    DEFAULT_SSH_PORT,
    DEFAULT_USER,
    FILE_PROTOCOL,
    HOST_KEY_ACCEPT_ANY,
    HOST_KEY_TRUST_ON_FIRST_USE,
    HOST_KEY_VERIFY,
)
from .exceptions import ConfigError


class HostKeyPolicy(str, Enum):
    """How the server host key is checked during the handshake"""

    ACCEPT_ANY = HOST_KEY_ACCEPT_ANY
    TRUST_ON_FIRST_USE = HOST_KEY_TRUST_ON_FIRST_USE
    VERIFY = HOST_KEY_VERIFY


@dataclass(frozen=True)
class ConnectionParams:
    """
    Immutable connection parameters for one SFTP session.

    ``private_key`` holds either the key text itself or a ``file://`` reference
    to a local key file. Secrets are kept out of ``repr``.
    """
    host: str
    user: str = DEFAULT_USER
    port: int = DEFAULT_SSH_PORT
    password: Optional[str] = field(default=None, repr=False)
    private_key: Optional[str] = field(default=None, repr=False)
    passphrase: Optional[str] = field(default=None, repr=False)
    use_key: bool = False
    use_passphrase: bool = False
    host_key_policy: HostKeyPolicy = HostKeyPolicy.ACCEPT_ANY
    known_hosts: Optional[str] = None
    timeout: Optional[float] = None

    def validate(self) -> None:
        """
        Check that the parameters describe a usable login.

        Raises:
            ConfigError: If a required field is missing or no
                authentication method is usable
        """
        if not self.host:
            raise ConfigError("Host is required")
        if not self.user:
            raise ConfigError("User is required")
        if not 0 < self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}")
        if self.use_key and not self.private_key:
            raise ConfigError("Key authentication requested but no private key given")
        if self.use_passphrase and not self.passphrase:
            raise ConfigError("Passphrase requested but none given")
        if not self.use_key and not self.password:
            raise ConfigError(
                "No authentication method: provide a password or a private key"
            )

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> ConnectionParams:
        """
        Build parameters from a loose configuration mapping.

        Recognised keys: host, user, port, password, key (inline key or
        ``file://`` reference), key_file (local path), passphrase, use_key,
        use_passphrase, host_key_policy, known_hosts, timeout.

        Raises:
            ConfigError: If a value cannot be converted
        """
        key = cfg.get("key") or None
        if key is None and cfg.get("key_file"):
            key = FILE_PROTOCOL + str(Path(cfg["key_file"]).expanduser())
        passphrase = cfg.get("passphrase") or None

        try:
            port = int(cfg.get("port") or DEFAULT_SSH_PORT)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid port: {cfg.get('port')!r}") from e

        try:
            policy = HostKeyPolicy(cfg.get("host_key_policy") or HostKeyPolicy.ACCEPT_ANY)
        except ValueError as e:
            choices = ", ".join(p.value for p in HostKeyPolicy)
            raise ConfigError(
                f"Invalid host key policy {cfg.get('host_key_policy')!r} (choose from {choices})"
            ) from e

        timeout = cfg.get("timeout")
        try:
            timeout = float(timeout) if timeout is not None else None
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid timeout: {timeout!r}") from e

        return cls(
            host=cfg.get("host") or "",
            user=cfg.get("user") or DEFAULT_USER,
            port=port,
            password=cfg.get("password") or None,
            private_key=key,
            passphrase=passphrase,
            use_key=bool(cfg.get("use_key", key is not None)),
            use_passphrase=bool(cfg.get("use_passphrase", passphrase is not None)),
            host_key_policy=policy,
            known_hosts=cfg.get("known_hosts") or None,
            timeout=timeout,
        )

    def describe(self) -> Dict[str, Any]:
        """Non-secret summary, safe for logs"""
        return {
            "host": self.host,
            "user": self.user,
            "port": self.port,
            "auth": [m for m, on in (("key", self.use_key), ("password", bool(self.password))) if on],
            "host_key_policy": self.host_key_policy.value,
        }


# --------------------
# Private key loading
# --------------------

# Tried in order; each raises SSHException on a key of another type
_KEY_CLASSES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


def read_key_material(private_key: str) -> str:
    """
    Return key text, reading it from disk for ``file://`` references.

    Raises:
        ConfigError: If the referenced file cannot be read
    """
    if not private_key.startswith(FILE_PROTOCOL):
        return private_key

    path = Path(private_key[len(FILE_PROTOCOL):]).expanduser()
    try:
        return path.read_text()
    except OSError as e:
        raise ConfigError(f'Private key file "{path}": {e}') from e


def load_private_key(params: ConnectionParams) -> Optional[paramiko.PKey]:
    """
    Parse the private key described by ``params``.

    Returns:
        The key, or None when key authentication is not enabled

    Raises:
        ConfigError: If the key is unreadable, encrypted without a
            passphrase, or in no supported format
    """
    if not params.use_key or not params.private_key:
        return None

    material = read_key_material(params.private_key)
    passphrase = params.passphrase if params.use_passphrase else None

    last_error: Optional[Exception] = None
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(material), password=passphrase)
        except paramiko.PasswordRequiredException as e:
            raise ConfigError("Private key is encrypted and no passphrase was given") from e
        except (paramiko.SSHException, ValueError) as e:
            last_error = e

    raise ConfigError(f"Unable to parse private key: {last_error}") from last_error
