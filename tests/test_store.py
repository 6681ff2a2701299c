# tests/test_store.py
"""Tests for the AssetStore."""

import json
import tempfile
import threading
from pathlib import Path

import pytest

from assetreg.errors import (
    AlreadyRegistered,
    InvalidAssetId,
    InvalidOwner,
    NotFound,
    NotOwner,
    RegistryError,
)
from assetreg.hashing import hash_bytes
from assetreg.store import Asset, AssetStore

ART = hash_bytes(b"art")
OTHER = hash_bytes(b"other")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store():
    """In-memory asset store."""
    return AssetStore()


class TestRegister:
    """Tests for AssetStore.register."""

    def test_register_creates_record(self, store):
        asset = store.register(ART, "alice", "title:Art", 10)

        assert asset == Asset(asset_id=ART, owner="alice", registered_at=10, metadata="title:Art")
        assert store.get(ART) == asset
        assert store.count() == 1

    def test_duplicate_rejected_and_original_kept(self, store):
        store.register(ART, "alice", "m1", 1)

        with pytest.raises(AlreadyRegistered) as exc_info:
            store.register(ART, "bob", "m2", 2)

        assert exc_info.value.asset_id == ART
        assert exc_info.value.owner == "alice"
        asset = store.get(ART)
        assert asset.owner == "alice"
        assert asset.metadata == "m1"
        assert asset.registered_at == 1
        assert store.count() == 1

    def test_duplicate_detected_across_spellings(self, store):
        store.register(ART, "alice", "", 1)
        with pytest.raises(AlreadyRegistered):
            store.register("0x" + ART.upper(), "alice", "", 2)

    def test_null_caller_rejected(self, store):
        with pytest.raises(InvalidOwner):
            store.register(ART, "", "m", 1)
        assert store.get(ART) is None
        assert store.count() == 0

    def test_malformed_id_rejected(self, store):
        with pytest.raises(InvalidAssetId):
            store.register("not-a-hash", "alice", "", 1)


class TestGet:
    """Tests for AssetStore.get."""

    def test_missing_is_none(self, store):
        assert store.get(ART) is None

    def test_empty_metadata_distinguishable_from_missing(self, store):
        store.register(ART, "alice", "", 1)
        asset = store.get(ART)
        assert asset is not None
        assert asset.metadata == ""

    def test_records_are_read_only(self, store):
        asset = store.register(ART, "alice", "m", 1)
        with pytest.raises(AttributeError):
            asset.owner = "mallory"


class TestSetOwner:
    """Tests for AssetStore.set_owner."""

    def test_transfer_returns_previous_owner(self, store):
        store.register(ART, "alice", "m", 5)

        previous = store.set_owner(ART, "alice", "bob")

        assert previous == "alice"
        asset = store.get(ART)
        assert asset.owner == "bob"
        assert asset.registered_at == 5
        assert asset.metadata == "m"

    def test_not_found(self, store):
        with pytest.raises(NotFound):
            store.set_owner(ART, "alice", "bob")

    def test_not_owner(self, store):
        store.register(ART, "alice", "m", 1)
        with pytest.raises(NotOwner) as exc_info:
            store.set_owner(ART, "mallory", "mallory")
        assert exc_info.value.owner == "alice"
        assert store.get(ART).owner == "alice"

    @pytest.mark.parametrize("new_owner", [None, "", "0x" + "0" * 40, 5])
    def test_null_new_owner(self, store, new_owner):
        store.register(ART, "alice", "m", 1)
        with pytest.raises(InvalidOwner):
            store.set_owner(ART, "alice", new_owner)
        assert store.get(ART).owner == "alice"

    def test_not_owner_checked_before_new_owner(self, store):
        store.register(ART, "alice", "m", 1)
        with pytest.raises(NotOwner):
            store.set_owner(ART, "mallory", "")

    def test_self_transfer_allowed(self, store):
        store.register(ART, "alice", "m", 1)
        assert store.set_owner(ART, "alice", "alice") == "alice"
        assert store.get(ART).owner == "alice"


class TestSetMetadata:
    """Tests for AssetStore.set_metadata."""

    def test_replaces_wholesale(self, store):
        store.register(ART, "alice", "title:Art;year:2024", 1)
        store.set_metadata(ART, "alice", "title:Art v2")
        assert store.get(ART).metadata == "title:Art v2"

    def test_not_owner(self, store):
        store.register(ART, "alice", "m", 1)
        with pytest.raises(NotOwner):
            store.set_metadata(ART, "bob", "x")
        assert store.get(ART).metadata == "m"

    def test_not_found(self, store):
        with pytest.raises(NotFound):
            store.set_metadata(ART, "alice", "x")


class TestCount:
    """Tests for the registration counter."""

    def test_counts_distinct_registrations_only(self, store):
        store.register(ART, "alice", "", 1)
        store.register(OTHER, "alice", "", 2)
        with pytest.raises(AlreadyRegistered):
            store.register(ART, "bob", "", 3)
        store.set_owner(ART, "alice", "bob")
        store.set_metadata(OTHER, "alice", "x")

        assert store.count() == 2
        assert len(store) == 2

    def test_latest_registered_at(self, store):
        assert store.latest_registered_at() == 0
        store.register(ART, "alice", "", 7)
        store.register(OTHER, "alice", "", 3)
        assert store.latest_registered_at() == 7


class TestPersistence:
    """Tests for the JSON snapshot."""

    def test_reload(self, temp_dir):
        store1 = AssetStore(temp_dir / "assets")
        store1.register(ART, "alice", "m", 1)
        store1.set_owner(ART, "alice", "bob")

        store2 = AssetStore(temp_dir / "assets")

        assert store2.get(ART) == Asset(ART, "bob", 1, "m")
        assert store2.count() == 1
        with pytest.raises(AlreadyRegistered):
            store2.register(ART, "carol", "", 2)

    def test_snapshot_format(self, temp_dir):
        store = AssetStore(temp_dir)
        store.register(ART, "alice", "m", 1)

        data = json.loads((temp_dir / "assets.json").read_text())

        assert data["version"] == "1.0"
        assert data["count"] == 1
        assert data["assets"] == [
            {"asset_id": ART, "owner": "alice", "registered_at": 1, "metadata": "m"}
        ]

    def test_corrupt_snapshot_raises(self, temp_dir):
        (temp_dir / "assets.json").write_text("{not json")
        with pytest.raises(RegistryError):
            AssetStore(temp_dir)

    def test_failed_mutation_not_persisted(self, temp_dir):
        store = AssetStore(temp_dir)
        store.register(ART, "alice", "m", 1)
        with pytest.raises(NotOwner):
            store.set_metadata(ART, "bob", "x")

        assert AssetStore(temp_dir).get(ART).metadata == "m"

    def test_failed_write_leaves_memory_unchanged(self, temp_dir, monkeypatch):
        store = AssetStore(temp_dir)
        store.register(ART, "alice", "m", 1)

        def failing_save(path, data):
            raise OSError("disk full")

        monkeypatch.setattr("assetreg.store.save_snapshot", failing_save)
        with pytest.raises(OSError):
            store.set_owner(ART, "alice", "bob")
        with pytest.raises(OSError):
            store.register(hash_bytes(b"other"), "alice", "", 2)

        assert store.get(ART).owner == "alice"
        assert hash_bytes(b"other") not in store
        assert store.count() == 1

    def test_restore(self, temp_dir):
        store = AssetStore(temp_dir)
        store.register(ART, "alice", "m", 1)
        previous = store.get(ART)
        store.set_owner(ART, "alice", "bob")

        store.restore(ART, previous)
        assert AssetStore(temp_dir).get(ART) == previous

        store.restore(ART, None)
        reloaded = AssetStore(temp_dir)
        assert reloaded.get(ART) is None
        assert reloaded.count() == 0


class TestConcurrency:
    """Tests for per-asset serialization."""

    def test_concurrent_registration_single_winner(self, store):
        results = []
        barrier = threading.Barrier(8)

        def worker(n):
            barrier.wait()
            try:
                store.register(ART, f"user{n}", "", n)
                results.append("ok")
            except AlreadyRegistered:
                results.append("dup")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("ok") == 1
        assert results.count("dup") == 7
        assert store.count() == 1

    def test_lock_is_shared_per_asset(self, store):
        assert store.lock_for(ART) is store.lock_for("0x" + ART)
        assert store.lock_for(ART) is not store.lock_for(OTHER)
