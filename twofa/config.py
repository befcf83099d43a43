"""
config.py - Constants and file locations.

Paths are resolved when they are asked for, not at import time, so the
environment variables below can be changed between calls (tests rely on it).

Environment:
- TWOFA_HOME          directory holding the account store (default ~/.2fa-cli)
- TWOFA_STORAGE_FILE  full path of the JSON store (default $TWOFA_HOME/accounts.json)
"""

import os
from pathlib import Path

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6          # standard: 6 digits
DEFAULT_TIME_STEP = 30      # TOTP step (seconds)
MIN_RAW_SECRET_LENGTH = 16  # shortest raw key accepted without a URI (80 bits)
DEFAULT_ISSUER = "Unknown"  # stored when a URI carries no issuer at all
STORAGE_VERSION = 1

HOME_ENV = "TWOFA_HOME"
STORAGE_FILE_ENV = "TWOFA_STORAGE_FILE"
DEFAULT_HOME = Path.home() / ".2fa-cli"
STORAGE_FILE_NAME = "accounts.json"


def get_home_dir() -> Path:
    raw = os.environ.get(HOME_ENV)
    return Path(raw).expanduser() if raw else DEFAULT_HOME


def get_storage_path() -> Path:
    """Location of the account store, honouring TWOFA_STORAGE_FILE then TWOFA_HOME."""
    raw = os.environ.get(STORAGE_FILE_ENV)
    if raw:
        return Path(raw).expanduser()
    return get_home_dir() / STORAGE_FILE_NAME
