"""
Project constants definitions
"""

# ============================================================
# Connection
# ============================================================

DEFAULT_SSH_PORT = 22
DEFAULT_USER = "root"

# Prefix marking a private key given as a local file reference
FILE_PROTOCOL = "file://"

# ============================================================
# Host Key Policies
# ============================================================

HOST_KEY_ACCEPT_ANY = "accept-any"
HOST_KEY_TRUST_ON_FIRST_USE = "trust-on-first-use"
HOST_KEY_VERIFY = "verify"

KNOWN_HOSTS_PATH = "~/.ssh/known_hosts"

# ============================================================
# Operations
# ============================================================

LIST_COMMAND = "ls -al"

# ============================================================
# SSH Config
# ============================================================

SSH_CONFIG_PATH = "~/.ssh/config"

# ============================================================
# Configuration
# ============================================================

ENV_PREFIX = "SFTPS_"
