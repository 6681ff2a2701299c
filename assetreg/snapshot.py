# assetreg/snapshot.py
"""
JSON snapshot files shared by the stores.

Each store keeps its whole state in a single JSON document. Writes go to a
sibling temporary file which is then renamed over the old snapshot, so a
reader never sees a partially written file.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import RegistryError

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"


def load_snapshot(path: Path) -> Optional[Dict[str, Any]]:
    """
    Load a snapshot document.

    Returns None if the file does not exist yet.

    Raises:
        RegistryError: if the file exists but cannot be parsed
    """
    if not path.exists():
        return None
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to load snapshot {path}: {e}")
        raise RegistryError(f"Corrupt snapshot {path}: {e}") from e
    if not isinstance(data, dict):
        raise RegistryError(f"Corrupt snapshot {path}: expected a JSON object")
    return data


def save_snapshot(path: Path, data: Dict[str, Any]) -> None:
    """Atomically replace a snapshot document."""
    data = {"version": SNAPSHOT_VERSION, **data}
    tmp_path = path.with_name(path.name + ".tmp")
    with open(tmp_path, "w") as f:
        json.dump(data, f, indent=2)
    os.replace(tmp_path, path)
