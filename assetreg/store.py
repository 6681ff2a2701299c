# assetreg/store.py
"""
Canonical asset records.

The AssetStore maps a 32-byte content identifier to the asset record:
- who owns it now
- when it was registered (logical timestamp, set once)
- the latest metadata string

Records are immutable values. A mutation builds a new record and swaps it
in, so a concurrent reader sees either the old or the new record, never a
mix of both. Every read-validate-write sequence runs under a lock keyed by
the asset identifier.
"""

import logging
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .errors import AlreadyRegistered, InvalidOwner, NotFound, NotOwner, RegistryError
from .hashing import is_null_principal, normalize_asset_id
from .snapshot import load_snapshot, save_snapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Asset:
    """
    A registered asset.

    The asset_id is the true identifier and never changes. Instances are
    read-only views: the store replaces them whole on every mutation.

    Attributes:
        asset_id: 64 hex characters of the content hash
        owner: Current owner principal
        registered_at: Logical timestamp of registration
        metadata: Opaque metadata string (may be empty)
    """
    asset_id: str
    owner: str
    registered_at: int
    metadata: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "owner": self.owner,
            "registered_at": self.registered_at,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        return cls(
            asset_id=normalize_asset_id(data["asset_id"]),
            owner=data["owner"],
            registered_at=data["registered_at"],
            metadata=data.get("metadata", ""),
        )


class AssetStore:
    """
    Mapping from asset identifier to Asset record.

    Structure (when a store_dir is given):
        store_dir/
            assets.json      # Records and the registration counter

    Without a store_dir the store lives in memory only.
    """

    def __init__(self, store_dir: Path | str = None):
        self.store_dir = Path(store_dir) if store_dir else None
        self._assets: Dict[str, Asset] = {}
        self._count = 0
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        # Guards dict insertion, the counter and snapshot writes
        self._guard = threading.Lock()
        if self.store_dir:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            self._load()

    def _index_path(self) -> Path:
        return self.store_dir / "assets.json"

    def _load(self):
        """Load records from disk."""
        data = load_snapshot(self._index_path())
        if data is None:
            return
        try:
            self._assets = {
                asset.asset_id: asset
                for asset in (Asset.from_dict(a) for a in data.get("assets", []))
            }
            self._count = max(int(data.get("count", 0)), len(self._assets))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to load assets: {e}")
            raise RegistryError(f"Corrupt asset snapshot {self._index_path()}: {e}") from e
        logger.info(f"Loaded {len(self._assets)} assets from {self.store_dir}")

    def _apply(self, asset_id: str, asset: Optional[Asset], count: int) -> None:
        """
        Write the snapshot with one record changed, then change memory.

        If the write fails the in-memory state is untouched. A None asset
        drops the record. Caller holds self._guard.
        """
        if self.store_dir:
            assets = dict(self._assets)
            if asset is None:
                assets.pop(asset_id, None)
            else:
                assets[asset_id] = asset
            save_snapshot(self._index_path(), {
                "count": count,
                "assets": [a.to_dict() for a in assets.values()],
            })
        if asset is None:
            self._assets.pop(asset_id, None)
        else:
            self._assets[asset_id] = asset
        self._count = count

    def lock_for(self, asset_id: str) -> threading.RLock:
        """
        Get the lock serializing mutations of one asset.

        The lock is re-entrant so a coordinator can hold it around a store
        call that acquires it again.
        """
        asset_id = normalize_asset_id(asset_id)
        with self._locks_guard:
            lock = self._locks.get(asset_id)
            if lock is None:
                lock = self._locks[asset_id] = threading.RLock()
            return lock

    def _put(self, asset: Asset) -> None:
        with self._guard:
            self._apply(asset.asset_id, asset, self._count)

    def register(self, asset_id: str, caller: str, metadata: str, now: int) -> Asset:
        """
        Create a record owned by the caller.

        Args:
            asset_id: Content identifier (32 bytes or 64 hex characters)
            caller: Principal that becomes the owner
            metadata: Initial metadata string
            now: Logical timestamp recorded as registered_at

        Returns:
            The new Asset

        Raises:
            AlreadyRegistered: if the identifier is already present
            InvalidOwner: if the caller is the null principal
        """
        asset_id = normalize_asset_id(asset_id)
        with self.lock_for(asset_id):
            existing = self._assets.get(asset_id)
            if existing is not None:
                raise AlreadyRegistered(asset_id, existing.owner)
            if is_null_principal(caller):
                raise InvalidOwner(asset_id, caller)

            asset = Asset(
                asset_id=asset_id,
                owner=caller,
                registered_at=now,
                metadata=metadata or "",
            )
            with self._guard:
                self._apply(asset_id, asset, self._count + 1)
        return asset

    def get(self, asset_id: str) -> Optional[Asset]:
        """Get an asset by identifier, or None if it was never registered."""
        return self._assets.get(normalize_asset_id(asset_id))

    def _require_owner(self, asset_id: str, caller: str) -> Asset:
        asset = self._assets.get(asset_id)
        if asset is None:
            raise NotFound(asset_id)
        if caller != asset.owner:
            raise NotOwner(asset_id, caller, asset.owner)
        return asset

    def set_owner(self, asset_id: str, caller: str, new_owner: str) -> str:
        """
        Transfer ownership.

        Transferring to the current owner is allowed.

        Returns:
            The previous owner

        Raises:
            NotFound: if the identifier is not registered
            NotOwner: if the caller is not the current owner
            InvalidOwner: if new_owner is the null principal
        """
        asset_id = normalize_asset_id(asset_id)
        with self.lock_for(asset_id):
            asset = self._require_owner(asset_id, caller)
            if is_null_principal(new_owner):
                raise InvalidOwner(asset_id, new_owner)
            self._put(replace(asset, owner=new_owner))
        return asset.owner

    def set_metadata(self, asset_id: str, caller: str, new_metadata: str) -> None:
        """
        Replace an asset's metadata wholesale.

        Raises:
            NotFound: if the identifier is not registered
            NotOwner: if the caller is not the current owner
        """
        asset_id = normalize_asset_id(asset_id)
        with self.lock_for(asset_id):
            asset = self._require_owner(asset_id, caller)
            self._put(replace(asset, metadata=new_metadata or ""))

    def restore(self, asset_id: str, previous: Optional[Asset]) -> None:
        """
        Put back the record a mutation replaced, when the rest of its unit failed.

        A previous of None undoes a registration, counter included.
        """
        asset_id = normalize_asset_id(asset_id)
        with self.lock_for(asset_id):
            with self._guard:
                count = self._count
                if previous is None and asset_id in self._assets:
                    count -= 1
                self._apply(asset_id, previous, count)
        logger.warning(f"Rolled back asset {asset_id[:16]}...")

    def count(self) -> int:
        """Total number of assets ever registered."""
        return self._count

    def latest_registered_at(self) -> int:
        """Highest registration timestamp in the store (0 when empty)."""
        return max((a.registered_at for a in self.list()), default=0)

    def list(self) -> List[Asset]:
        """List all assets."""
        with self._guard:
            return list(self._assets.values())

    def __contains__(self, asset_id: str) -> bool:
        return self.get(asset_id) is not None

    def __len__(self) -> int:
        return len(self._assets)

    def __iter__(self) -> Iterator[Asset]:
        return iter(self.list())
