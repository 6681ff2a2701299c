# assetreg/events.py
"""
Registry events.

Every successful mutation emits exactly one event:
- AssetRegistered: an asset was created with its first owner
- OwnershipTransferred: the owner of an asset changed
- AssetMetadataUpdated: the metadata of an asset was replaced

Events are appended to an EventLog, which is the audit trail of the
registry, and then published to any subscribed observers.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from .errors import RegistryError
from .hashing import normalize_asset_id
from .snapshot import load_snapshot, save_snapshot

if TYPE_CHECKING:
    from .signing import RegistryKey

logger = logging.getLogger(__name__)


def _generate_id() -> str:
    """Generate unique event ID."""
    return str(uuid.uuid4())


@dataclass
class Event:
    """
    Base registry event.

    Attributes:
        event_type: Type (AssetRegistered, OwnershipTransferred, ...)
        asset_id: Identifier of the asset the event concerns
        data: Type-specific fields of the event
        event_id: Unique identifier
        sequence: Position in the event log (assigned on append)
        signature: Registry signature (added on append when signing is on)
    """
    event_type: str
    asset_id: str
    data: Dict[str, Any]
    event_id: str = field(default_factory=_generate_id)
    sequence: int = 0
    signature: Optional[Dict[str, Any]] = None

    def payload(self) -> Dict[str, Any]:
        """Return the stable, observer-facing representation."""
        return {"type": self.event_type, "id": self.asset_id, **self.data}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for storage."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "asset_id": self.asset_id,
            "data": self.data,
            "sequence": self.sequence,
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        """Deserialize from storage, restoring the concrete event class."""
        event_cls = EVENT_TYPES.get(data["event_type"])
        common = dict(
            asset_id=normalize_asset_id(data["asset_id"]),
            data=data["data"],
            event_id=data["event_id"],
            sequence=data.get("sequence", 0),
            signature=data.get("signature"),
        )
        if event_cls is None:
            return Event(event_type=data["event_type"], **common)
        return event_cls(**common)


@dataclass
class AssetRegistered(Event):
    """An asset was registered: {id, owner, timestamp}."""
    event_type: str = field(default="AssetRegistered", init=False)

    @classmethod
    def create(cls, asset_id: str, owner: str, timestamp: int) -> "AssetRegistered":
        return cls(asset_id=asset_id, data={"owner": owner, "timestamp": timestamp})


@dataclass
class OwnershipTransferred(Event):
    """Ownership changed hands: {id, previousOwner, newOwner}."""
    event_type: str = field(default="OwnershipTransferred", init=False)

    @classmethod
    def create(cls, asset_id: str, previous_owner: str, new_owner: str) -> "OwnershipTransferred":
        return cls(
            asset_id=asset_id,
            data={"previousOwner": previous_owner, "newOwner": new_owner},
        )


@dataclass
class AssetMetadataUpdated(Event):
    """Metadata was replaced: {id, newMetadata}."""
    event_type: str = field(default="AssetMetadataUpdated", init=False)

    @classmethod
    def create(cls, asset_id: str, new_metadata: str) -> "AssetMetadataUpdated":
        return cls(asset_id=asset_id, data={"newMetadata": new_metadata})


EVENT_TYPES = {
    "AssetRegistered": AssetRegistered,
    "OwnershipTransferred": OwnershipTransferred,
    "AssetMetadataUpdated": AssetMetadataUpdated,
}

Subscriber = Callable[[Event], None]


class EventLog:
    """
    Append-only event log with synchronous observers.

    Structure (when a store_dir is given):
        store_dir/
            events.json
    """

    def __init__(self, store_dir: Path | str = None, key: "RegistryKey" = None):
        """
        Args:
            store_dir: Directory for the events.json snapshot (None = memory only)
            key: Registry key; when given every appended event is signed
        """
        self.store_dir = Path(store_dir) if store_dir else None
        self.key = key
        self._events: List[Event] = []
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()
        if self.store_dir:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            self._load()

    def _log_path(self) -> Path:
        return self.store_dir / "events.json"

    def _load(self):
        """Load events from disk."""
        data = load_snapshot(self._log_path())
        if data is None:
            return
        try:
            self._events = [Event.from_dict(e) for e in data.get("events", [])]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to load events: {e}")
            raise RegistryError(f"Corrupt event snapshot {self._log_path()}: {e}") from e

    def _save(self, events: List[Event]):
        """Save events to disk. Caller holds self._lock."""
        if not self.store_dir:
            return
        save_snapshot(self._log_path(), {
            "events": [e.to_dict() for e in events],
        })

    def subscribe(self, callback: Subscriber) -> None:
        """Register an observer called with each event after it is appended."""
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> bool:
        """Remove an observer. Returns False if it was not subscribed."""
        with self._lock:
            if callback not in self._subscribers:
                return False
            self._subscribers.remove(callback)
            return True

    def append(self, event: Event) -> Event:
        """
        Append an event, then publish it to subscribers.

        Subscribers run after the event is durable. An observer that raises
        is logged and skipped; the event stays in the log.
        """
        with self._lock:
            event.sequence = len(self._events) + 1
            if self.key is not None:
                from .signing import sign_event
                sign_event(event, self.key)
            self._save(self._events + [event])
            self._events.append(event)
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Event subscriber failed on {event.event_type} #{event.sequence}")
        return event

    def get(self, event_id: str) -> Optional[Event]:
        """Get an event by ID."""
        for e in self.list():
            if e.event_id == event_id:
                return e
        return None

    def list(self) -> List[Event]:
        """List all events in append order."""
        with self._lock:
            return list(self._events)

    def since(self, sequence: int) -> List[Event]:
        """Events with a sequence number greater than the given one."""
        return [e for e in self.list() if e.sequence > sequence]

    def find_by_asset(self, asset_id: str) -> List[Event]:
        """Find events concerning one asset, in append order."""
        asset_id = normalize_asset_id(asset_id)
        return [e for e in self.list() if e.asset_id == asset_id]

    def verify_all(self, public_key_pem: bytes) -> bool:
        """Check that every event in the log carries a valid signature."""
        from .signing import verify_event
        return all(verify_event(e, public_key_pem) for e in self.list())

    def __len__(self) -> int:
        return len(self._events)
