"""
Connection factory implementation
"""
from typing import Any, Dict, Mapping

from ...core.interfaces import ConnectionFactory
from ...core.client import SecureFtp
from ...core.params import ConnectionParams
from ...core.utils import load_ssh_config
from ...core.exceptions import ConfigError
from ...core.logging import get_logger

logger = get_logger(__name__)


class SftpConnectionFactory(ConnectionFactory):
    """SecureFtp connection factory"""

    def resolve(self, cfg: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Layer explicit settings over ~/.ssh/config for the host alias.

        Args:
            cfg: Connection settings; must contain host

        Returns:
            Merged settings dictionary

        Raises:
            ConfigError: If no host is given
        """
        alias = cfg.get("host")
        if not alias:
            raise ConfigError("No host given")

        params: Dict[str, Any] = {"host": alias}
        params.update(load_ssh_config(alias, required=False))
        if params["host"] != alias:
            logger.debug("Resolved SSH config alias %s -> %s", alias, params["host"])
        # An explicit inline key wins over an IdentityFile from ssh config
        if cfg.get("key") or cfg.get("key_file"):
            params.pop("key_file", None)
        params.update({k: v for k, v in cfg.items() if v is not None and k != "host"})
        return params

    def create(self, cfg: Mapping[str, Any]) -> SecureFtp:
        """
        Create and connect a SecureFtp session.

        Args:
            cfg: Connection settings dictionary

        Returns:
            Connected SecureFtp instance

        Raises:
            ConfigError: If settings are invalid
            ConnectionError: If connection fails
        """
        ftp = SecureFtp(ConnectionParams.from_mapping(self.resolve(cfg)))
        ftp.connect()
        return ftp
