# assetreg/errors.py
"""
Registry error types.

All errors are caller errors: they are raised synchronously, before any
state is changed, and are never retried by the registry itself.
"""

from typing import Optional


class RegistryError(Exception):
    """Base class for all registry errors."""


class AlreadyRegistered(RegistryError):
    """An asset with this identifier is already registered."""

    def __init__(self, asset_id: str, owner: Optional[str] = None):
        self.asset_id = asset_id
        self.owner = owner
        super().__init__(f"Asset {asset_id} is already registered")


class NotFound(RegistryError):
    """No asset is registered under this identifier."""

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Asset {asset_id} is not registered")


class NotOwner(RegistryError):
    """The caller is not the current owner of the asset."""

    def __init__(self, asset_id: str, caller: str, owner: str):
        self.asset_id = asset_id
        self.caller = caller
        self.owner = owner
        super().__init__(f"{caller} is not the owner of asset {asset_id}")


class InvalidOwner(RegistryError):
    """The target principal of a transfer is null or empty."""

    def __init__(self, asset_id: str, new_owner: Optional[str]):
        self.asset_id = asset_id
        self.new_owner = new_owner
        super().__init__(f"Invalid new owner for asset {asset_id}: {new_owner!r}")


class InvalidAssetId(RegistryError, ValueError):
    """The identifier is not a 32-byte hash."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid asset id: {value!r} (expected 32 bytes or 64 hex characters)")


class ConfigError(RegistryError):
    """Configuration file is unreadable or invalid."""
