#!/usr/bin/env python3
"""
Walk through an asset's life in an in-memory registry.

Registers an artwork, hands it to another owner, updates its metadata,
and shows that the previous owner can no longer touch it.
"""

import json

from assetreg import LogicalClock, NotOwner, RegistryKey, RegistryService, hash_bytes
from assetreg.events import EventLog


def main():
    key = RegistryKey.generate()
    registry = RegistryService(events=EventLog(key=key))
    registry.subscribe(lambda e: print(f"  event #{e.sequence}: {json.dumps(e.payload())}"))
    clock = LogicalClock()

    asset_id = hash_bytes(b"title:Art")
    print(f"Asset: {asset_id[:16]}...")

    registry.register("Alice", asset_id, "title:Art", clock.now())
    print(f"verify -> {registry.verify(asset_id)}")

    registry.transfer("Alice", asset_id, "Bob")
    print(f"verify -> {registry.verify(asset_id)}")

    registry.update_metadata("Bob", asset_id, "title:Art v2")
    print(f"verify -> {registry.verify(asset_id)}")

    try:
        registry.update_metadata("Alice", asset_id, "hack")
    except NotOwner as e:
        print(f"rejected: {e}")

    print()
    print(f"Assets granted to Alice (historical): {len(registry.assets_by_owner('Alice'))}")
    print(f"Assets Alice owns now: {len(registry.current_assets_of('Alice'))}")
    print(f"Owners so far: {' -> '.join(registry.owner_history(asset_id))}")
    print(f"Event log signatures valid: {registry.events.verify_all(key.public_key)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
