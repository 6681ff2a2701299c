# assetreg/service.py
"""
Registry service.

Coordinates the AssetStore, the OwnershipIndex and the EventLog. Each
mutation is one unit under the asset's lock:

    validate + mutate AssetStore -> append OwnershipIndex -> append event

If the store rejects the call, nothing else happens: no index entry, no
event. If the index or event append fails, the steps already taken are
rolled back and the error propagates.
"""

import logging
from pathlib import Path
from typing import List, NamedTuple, Optional

from .events import (
    AssetMetadataUpdated,
    AssetRegistered,
    Event,
    EventLog,
    OwnershipTransferred,
    Subscriber,
)
from .hashing import normalize_asset_id
from .index import OwnershipIndex
from .signing import RegistryKey
from .store import Asset, AssetStore

logger = logging.getLogger(__name__)


class VerifyResult(NamedTuple):
    """Answer to "does this asset exist and who owns it"."""
    owner: str
    registered_at: int
    metadata: str
    found: bool


NOT_FOUND = VerifyResult(owner="", registered_at=0, metadata="", found=False)


class RegistryService:
    """
    The asset ownership registry.

    Usage:
        registry = RegistryService()
        registry.register("alice", asset_id, "title:Art", now=1)
        registry.transfer("alice", asset_id, "bob")
        registry.verify(asset_id)  # VerifyResult("bob", 1, "title:Art", True)
    """

    def __init__(
        self,
        assets: AssetStore = None,
        index: OwnershipIndex = None,
        events: EventLog = None,
    ):
        self.assets = assets if assets is not None else AssetStore()
        self.index = index if index is not None else OwnershipIndex()
        self.events = events if events is not None else EventLog()

    @classmethod
    def open(cls, base_dir: Path | str, key: RegistryKey = None) -> "RegistryService":
        """
        Open a registry persisted under a directory.

        Structure:
            base_dir/
                assets/assets.json
                index/index.json
                events/events.json
        """
        base_dir = Path(base_dir)
        base_dir.mkdir(parents=True, exist_ok=True)
        service = cls(
            assets=AssetStore(base_dir / "assets"),
            index=OwnershipIndex(base_dir / "index"),
            events=EventLog(base_dir / "events", key=key),
        )
        logger.info(f"Opened registry at {base_dir} ({service.total_count()} assets)")
        return service

    def subscribe(self, callback: Subscriber) -> None:
        """Observe every event emitted after a successful mutation."""
        self.events.subscribe(callback)

    def _roll_back(self, asset_id: str, previous: Optional[Asset], grantee: str = None) -> None:
        """
        Undo the committed steps of a mutation whose index or event append failed.

        The caller re-raises the original error; a failure here is only logged.
        """
        try:
            if grantee is not None:
                self.index.undo_grant(grantee, asset_id)
            self.assets.restore(asset_id, previous)
        except Exception:
            logger.exception(f"Rollback of {asset_id[:16]}... failed")

    def register(self, caller: str, asset_id: str, metadata: str, now: int) -> Asset:
        """
        Register an asset owned by the caller.

        Raises:
            AlreadyRegistered: if the asset exists; the existing record is kept
            InvalidOwner: if the caller is the null principal
        """
        asset_id = normalize_asset_id(asset_id)
        with self.assets.lock_for(asset_id):
            asset = self.assets.register(asset_id, caller, metadata, now)
            granted = False
            try:
                self.index.record_grant(caller, asset_id)
                granted = True
                self.events.append(AssetRegistered.create(asset_id, caller, now))
            except Exception:
                self._roll_back(asset_id, None, caller if granted else None)
                raise
        logger.debug(f"Registered {asset_id[:16]}... to {caller}")
        return asset

    def verify(self, asset_id: str) -> VerifyResult:
        """
        Look up an asset.

        Never fails for a well-formed identifier: an unknown asset yields
        empty owner and metadata, timestamp 0 and found=False.
        """
        asset = self.assets.get(asset_id)
        if asset is None:
            return NOT_FOUND
        return VerifyResult(asset.owner, asset.registered_at, asset.metadata, True)

    def transfer(self, caller: str, asset_id: str, new_owner: str) -> None:
        """
        Transfer an asset to a new owner.

        Raises:
            NotFound: if the asset is not registered
            NotOwner: if the caller is not the current owner
            InvalidOwner: if new_owner is the null principal
        """
        asset_id = normalize_asset_id(asset_id)
        with self.assets.lock_for(asset_id):
            previous = self.assets.get(asset_id)
            previous_owner = self.assets.set_owner(asset_id, caller, new_owner)
            granted = False
            try:
                self.index.record_grant(new_owner, asset_id)
                granted = True
                self.events.append(OwnershipTransferred.create(asset_id, previous_owner, new_owner))
            except Exception:
                self._roll_back(asset_id, previous, new_owner if granted else None)
                raise
        logger.debug(f"Transferred {asset_id[:16]}... {previous_owner} -> {new_owner}")

    def update_metadata(self, caller: str, asset_id: str, new_metadata: str) -> None:
        """
        Replace an asset's metadata.

        Raises:
            NotFound: if the asset is not registered
            NotOwner: if the caller is not the current owner
        """
        asset_id = normalize_asset_id(asset_id)
        with self.assets.lock_for(asset_id):
            previous = self.assets.get(asset_id)
            self.assets.set_metadata(asset_id, caller, new_metadata)
            try:
                self.events.append(AssetMetadataUpdated.create(asset_id, new_metadata or ""))
            except Exception:
                self._roll_back(asset_id, previous)
                raise
        logger.debug(f"Updated metadata of {asset_id[:16]}...")

    def assets_by_owner(self, principal: str) -> List[str]:
        """
        Every asset ever granted to the principal, in grant order.

        This is the historical ownership log, NOT the principal's current
        holdings: assets transferred away stay listed, and an asset that
        came back after a round trip is listed once per grant. Use
        current_assets_of() for current holdings.
        """
        return self.index.list_for(principal)

    def current_assets_of(self, principal: str) -> List[str]:
        """Assets the principal owns right now, in first-grant order."""
        seen = set()
        current = []
        for asset_id in self.index.list_for(principal):
            if asset_id in seen:
                continue
            seen.add(asset_id)
            asset = self.assets.get(asset_id)
            if asset is not None and asset.owner == principal:
                current.append(asset_id)
        return current

    def total_count(self) -> int:
        """Number of assets ever registered."""
        return self.assets.count()

    def history(self, asset_id: str) -> List[Event]:
        """All events recorded for one asset, oldest first."""
        return self.events.find_by_asset(asset_id)

    def owner_history(self, asset_id: str) -> List[str]:
        """Successive owners of an asset, first owner first."""
        owners = []
        for event in self.history(asset_id):
            if event.event_type == "AssetRegistered":
                owners.append(event.data["owner"])
            elif event.event_type == "OwnershipTransferred":
                owners.append(event.data["newOwner"])
        return owners

    def get(self, asset_id: str) -> Optional[Asset]:
        """Get the full asset record, or None if not registered."""
        return self.assets.get(asset_id)
