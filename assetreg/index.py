# assetreg/index.py
"""
Per-principal ownership index.

Maps a principal to every asset identifier it has been granted, by
registration or by transfer, in grant order. The index is an append-only
audit log, not a current-holdings view:

- entries are never removed when an asset is transferred away
- a principal that receives the same asset twice lists it twice

The current owner of an asset is always read from the AssetStore.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, List

from .errors import RegistryError
from .hashing import normalize_asset_id
from .snapshot import load_snapshot, save_snapshot

logger = logging.getLogger(__name__)


class OwnershipIndex:
    """
    Append-only mapping from principal to granted asset identifiers.

    Appends for one principal are serialized to keep insertion order.
    Unrelated principals only share a short section that swaps in the new
    sequence and writes the snapshot.

    Structure (when a store_dir is given):
        store_dir/
            index.json
    """

    def __init__(self, store_dir: Path | str = None):
        self.store_dir = Path(store_dir) if store_dir else None
        self._entries: Dict[str, List[str]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        # Guards insertion of new principals and snapshot writes
        self._guard = threading.Lock()
        if self.store_dir:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            self._load()

    def _index_path(self) -> Path:
        return self.store_dir / "index.json"

    def _load(self):
        """Load index from disk."""
        data = load_snapshot(self._index_path())
        if data is None:
            return
        try:
            self._entries = {
                principal: [normalize_asset_id(i) for i in asset_ids]
                for principal, asset_ids in data.get("principals", {}).items()
            }
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Failed to load ownership index: {e}")
            raise RegistryError(f"Corrupt index snapshot {self._index_path()}: {e}") from e

    def _save(self, principal: str, asset_ids: List[str]):
        """Save index to disk with one principal's sequence replaced. Caller holds self._guard."""
        if not self.store_dir:
            return
        entries = {p: list(ids) for p, ids in self._entries.items()}
        entries[principal] = asset_ids
        save_snapshot(self._index_path(), {"principals": entries})

    def _lock_for(self, principal: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(principal)
            if lock is None:
                lock = self._locks[principal] = threading.Lock()
            return lock

    def _replace(self, principal: str, asset_ids: List[str]) -> None:
        """Write the snapshot first, then swap the sequence in memory."""
        with self._guard:
            self._save(principal, asset_ids)
            self._entries[principal] = asset_ids

    def record_grant(self, principal: str, asset_id: str) -> None:
        """Append an asset identifier to the principal's sequence."""
        asset_id = normalize_asset_id(asset_id)
        with self._lock_for(principal):
            self._replace(principal, self.list_for(principal) + [asset_id])

    def undo_grant(self, principal: str, asset_id: str) -> bool:
        """
        Drop the last grant if it is this asset.

        Only for undoing an append whose mutation failed to commit; the
        index has no removal of committed history.
        """
        asset_id = normalize_asset_id(asset_id)
        with self._lock_for(principal):
            entries = self.list_for(principal)
            if not entries or entries[-1] != asset_id:
                return False
            self._replace(principal, entries[:-1])
        logger.warning(f"Rolled back grant of {asset_id[:16]}... to {principal}")
        return True

    def list_for(self, principal: str) -> List[str]:
        """
        Every asset identifier ever granted to the principal, in grant order.

        May contain assets the principal no longer owns, and duplicates.
        """
        return list(self._entries.get(principal, ()))

    def principals(self) -> List[str]:
        """List all principals that have received at least one grant."""
        with self._guard:
            return list(self._entries)

    def __contains__(self, principal: str) -> bool:
        return principal in self._entries
