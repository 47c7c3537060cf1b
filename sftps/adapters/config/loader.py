"""
Configuration loader with priority: CLI > env > TOML
"""
import os
import tomllib
from pathlib import Path
from typing import Dict, Any, Optional

from ...core.constants import ENV_PREFIX
from ...core.exceptions import ConfigError


# Environment variable suffix -> (config key, converter)
_ENV_KEYS = {
    "HOST": ("host", str),
    "USER": ("user", str),
    "PORT": ("port", int),
    "PASSWORD": ("password", str),
    "KEY": ("key", str),
    "KEY_FILE": ("key_file", str),
    "PASSPHRASE": ("passphrase", str),
    "HOST_KEY_POLICY": ("host_key_policy", str),
    "KNOWN_HOSTS": ("known_hosts", str),
    "TIMEOUT": ("timeout", float),
}


class ConfigLoader:
    """Configuration loader with priority support"""

    def __init__(self, env_prefix: str = ENV_PREFIX):
        self._env_prefix = env_prefix

    def load_toml(self, path: Path) -> Dict[str, Any]:
        """Load TOML configuration file"""
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            return tomllib.loads(path.read_text(encoding='utf-8'))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse TOML configuration {path}: {e}") from e

    def load_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        config = {}

        for suffix, (config_key, convert) in _ENV_KEYS.items():
            env_key = self._env_prefix + suffix
            value = os.getenv(env_key)
            if not value:
                continue
            try:
                config[config_key] = convert(value)
            except ValueError as e:
                raise ConfigError(f"Invalid value for {env_key}: {value!r}") from e

        return config

    def merge_configs(self, *configs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge multiple configurations with priority.
        Later configs override earlier ones; None values never override.
        """
        result: Dict[str, Any] = {}

        for config in configs:
            result.update({k: v for k, v in config.items() if v is not None})

        return result

    def load(
        self,
        toml_path: Optional[Path] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
    ) -> Dict[str, Any]:
        """
        Load configuration with priority: CLI > env > TOML

        Args:
            toml_path: Path to TOML configuration file
            cli_overrides: CLI parameter overrides
            use_env: Whether to load from environment variables

        Returns:
            Merged configuration dictionary
        """
        configs = []

        if toml_path:
            configs.append(self.load_toml(toml_path))

        if use_env:
            configs.append(self.load_env())

        if cli_overrides:
            configs.append(cli_overrides)

        return self.merge_configs(*configs)
