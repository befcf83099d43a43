"""
db_manager.py - Account store backed by one JSON file.

File layout:
    {"version": 1, "accounts": [{id, issuer, account, secret, digits, period, createdAt}, ...]}

Every operation reads the whole file and, when it changes something, writes
the whole file back. The previous version is kept next to it as ``.bak``.
Keys this module does not know about are written back untouched.
"""

import json
import logging
import os
import shutil
import tempfile
import time
import uuid
from pathlib import Path
from typing import List, Optional

from twofa.config import STORAGE_VERSION, get_storage_path
from twofa.database.setup_database import StorageError, empty_store, secure_file

logger = logging.getLogger(__name__)


# --- File I/O --------------------------------------------------------------
def read_storage(path: Optional[Path] = None) -> dict:
    """Load the store; a missing file is an empty store."""
    path = Path(path) if path is not None else get_storage_path()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return empty_store()
    except (OSError, json.JSONDecodeError) as e:
        raise StorageError(f"Cannot read account store {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("accounts", []), list):
        raise StorageError(f"Account store {path} has an unexpected layout")
    data.setdefault("version", STORAGE_VERSION)
    data.setdefault("accounts", [])
    return data


def write_storage(data: dict, path: Optional[Path] = None) -> Path:
    """Replace the store atomically, keeping a .bak of the previous file."""
    path = Path(path) if path is not None else get_storage_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            shutil.copy2(path, path.with_name(path.name + ".bak"))
        fd, tmp = tempfile.mkstemp(prefix=".accounts-", suffix=".json", dir=path.parent)
    except OSError as e:
        raise StorageError(f"Cannot write account store {path}: {e}") from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
    except OSError as e:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise StorageError(f"Cannot write account store {path}: {e}") from e
    secure_file(path)
    return path


# --- Queries ---------------------------------------------------------------
def get_accounts(path: Optional[Path] = None) -> List[dict]:
    return read_storage(path)["accounts"]


def get_account(account_id: str, path: Optional[Path] = None) -> Optional[dict]:
    for record in get_accounts(path):
        if record.get("id") == account_id:
            return record
    return None


def find_account(query: str, accounts: Optional[List[dict]] = None) -> Optional[dict]:
    """
    First account whose name or issuer contains ``query`` (case-insensitive),
    or whose id is exactly ``query``.
    """
    if accounts is None:
        accounts = get_accounts()
    needle = query.lower()
    for record in accounts:
        if (
            needle in str(record.get("account", "")).lower()
            or needle in str(record.get("issuer", "")).lower()
            or record.get("id") == query
        ):
            return record
    return None


def display_name(record: dict) -> str:
    """'GitHub (alice)' when there is an issuer, otherwise just the account name."""
    issuer = record.get("issuer") or ""
    account = record.get("account") or ""
    return f"{issuer} ({account})" if issuer else account


# --- Mutations -------------------------------------------------------------
def add_account(issuer: str, account: str, secret: str, digits: int, period: int,
                path: Optional[Path] = None) -> dict:
    """Append a new account; id and createdAt are assigned here."""
    data = read_storage(path)
    record = {
        "id": str(uuid.uuid4()),
        "issuer": issuer,
        "account": account,
        "secret": secret,
        "digits": digits,
        "period": period,
        "createdAt": int(time.time() * 1000),
    }
    data["accounts"].append(record)
    write_storage(data, path)
    logger.debug("Added account %s", record["id"])
    return record


def remove_account(account_id: str, path: Optional[Path] = None) -> bool:
    """Delete by id. Returns False (and writes nothing) when the id is unknown."""
    data = read_storage(path)
    before = len(data["accounts"])
    data["accounts"] = [r for r in data["accounts"] if r.get("id") != account_id]

    if len(data["accounts"]) == before:
        return False
    write_storage(data, path)
    logger.debug("Removed account %s", account_id)
    return True


def _update(account_id: str, updates: dict, path: Optional[Path]) -> Optional[dict]:
    data = read_storage(path)
    for record in data["accounts"]:
        if record.get("id") == account_id:
            record.update(updates)
            write_storage(data, path)
            return record
    return None


def rename_account(account_id: str, issuer: Optional[str] = None, account: Optional[str] = None,
                   path: Optional[Path] = None) -> Optional[dict]:
    """Change the display fields only. Returns the updated record, or None if not found."""
    updates = {}
    if issuer is not None:
        updates["issuer"] = issuer
    if account is not None:
        updates["account"] = account
    if not updates:
        return get_account(account_id, path)
    return _update(account_id, updates, path)


def redefine_account(account_id: str, secret: str, digits: int, period: int,
                     path: Optional[Path] = None) -> Optional[dict]:
    """Replace the code-defining fields (secret, digits, period) of an account."""
    logger.debug("Redefining account %s (digits=%s, period=%s)", account_id, digits, period)
    return _update(account_id, {"secret": secret, "digits": digits, "period": period}, path)
