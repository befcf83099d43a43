import json
import logging
import os
from pathlib import Path
from typing import Optional

from twofa.config import STORAGE_VERSION, get_storage_path

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """The account store exists but cannot be read or written."""


def empty_store() -> dict:
    return {"version": STORAGE_VERSION, "accounts": []}


def secure_file(path: Path) -> None:
    """chmod 600; not fatal on filesystems that refuse it."""
    try:
        os.chmod(path, 0o600)
    except OSError:
        logger.warning("Unable to chmod %s to 600", path)


def setup_database(path: Optional[Path] = None) -> Path:
    """Create the store directory and an empty account file if they do not exist yet."""
    path = Path(path) if path is not None else get_storage_path()

    try:
        # make sure the directory exists
        path.parent.mkdir(parents=True, exist_ok=True)

        if not path.exists():
            with open(path, "w", encoding="utf-8") as f:
                json.dump(empty_store(), f, indent=2)
            secure_file(path)
            logger.info("Created account store at %s", path)
    except OSError as e:
        raise StorageError(f"Cannot create account store {path}: {e}") from e
    return path


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print(f"Account store ready: {setup_database()}")
