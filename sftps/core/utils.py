"""
Core utility functions
"""
import paramiko
from pathlib import Path
from typing import Dict, Any, Optional

from .constants import SSH_CONFIG_PATH
from .exceptions import ConfigError


# ============================================================
# SSH Config Management
# ============================================================

def load_ssh_config(
    hostname: str,
    config_path: Optional[Path] = None,
    required: bool = True,
) -> Dict[str, Any]:
    """
    Load configuration for specified Host from ~/.ssh/config.

    Only options present in the file are returned, so the result can be
    merged beneath explicit settings.

    Args:
        hostname: Host name or alias in SSH configuration
        config_path: Alternate config file (default: ~/.ssh/config)
        required: Raise if the config file is missing instead of returning {}

    Returns:
        Dictionary with any of host, user, port, key_file

    Raises:
        ConfigError: If the config file is missing and required
    """
    path = (config_path or Path(SSH_CONFIG_PATH)).expanduser()
    if not path.exists():
        if required:
            raise ConfigError(f"{path} does not exist")
        return {}

    ssh_config = paramiko.SSHConfig.from_path(str(path))
    entry = ssh_config.lookup(hostname)

    params: Dict[str, Any] = {"host": entry.get("hostname", hostname)}
    if "user" in entry:
        params["user"] = entry["user"]
    if "port" in entry:
        params["port"] = int(entry["port"])
    if entry.get("identityfile"):
        params["key_file"] = entry["identityfile"][0]
    return params


# ============================================================
# Formatting
# ============================================================

def format_size(size_bytes: int) -> str:
    """
    Format bytes to human-readable size string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string like "100 B", "1.5 KB", "2.0 GB"
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
