# assetreg - Content-addressed asset ownership registry
#
# Binds an immutable content hash to a mutable owner and metadata, and keeps
# an append-only audit trail of every change.
#
# Core concepts:
# - AssetStore: canonical asset id -> Asset record (owner, registered_at, metadata)
# - OwnershipIndex: principal -> every asset ever granted to it (historical)
# - EventLog: append-only, optionally signed, record of every mutation
# - RegistryService: register / verify / transfer / update_metadata

from .errors import (
    RegistryError,
    AlreadyRegistered,
    NotFound,
    NotOwner,
    InvalidOwner,
    InvalidAssetId,
    ConfigError,
)
from .hashing import normalize_asset_id, hash_bytes, hash_file, is_null_principal
from .store import Asset, AssetStore
from .index import OwnershipIndex
from .events import (
    Event,
    AssetRegistered,
    OwnershipTransferred,
    AssetMetadataUpdated,
    EventLog,
)
from .signing import RegistryKey, sign_event, verify_event
from .clock import LogicalClock
from .config import RegistryConfig
from .service import RegistryService, VerifyResult

__all__ = [
    # Errors
    "RegistryError",
    "AlreadyRegistered",
    "NotFound",
    "NotOwner",
    "InvalidOwner",
    "InvalidAssetId",
    "ConfigError",
    # Identifiers
    "normalize_asset_id",
    "hash_bytes",
    "hash_file",
    "is_null_principal",
    # Core
    "Asset",
    "AssetStore",
    "OwnershipIndex",
    "Event",
    "AssetRegistered",
    "OwnershipTransferred",
    "AssetMetadataUpdated",
    "EventLog",
    "RegistryService",
    "VerifyResult",
    # Signing, clock, config
    "RegistryKey",
    "sign_event",
    "verify_event",
    "LogicalClock",
    "RegistryConfig",
]

__version__ = "0.1.0"
