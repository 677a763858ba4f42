"""Tests for rgstry.store module."""

import threading

import pytest

from rgstry.exceptions import RegistryNotFound
from rgstry.store import REGISTRY_STORE, RegistryRecord, RegistryStore


class TestRegistryRecord:
    """Test RegistryRecord dataclass."""

    def test_defaults_are_empty(self):
        """Test that a new record starts with empty mappings."""
        record = RegistryRecord()
        assert record.class_metadata == {}
        assert record.method_metadata == {}

    def test_records_do_not_share_storage(self):
        """Test that default mappings are not shared between records."""
        first = RegistryRecord()
        second = RegistryRecord()

        class Target:
            pass

        first.class_metadata[Target] = ["a"]
        first.method_metadata[Target] = {"run": ["b"]}

        assert second.class_metadata == {}
        assert second.method_metadata == {}
        assert first.lock is not second.lock


class TestRegistryStore:
    """Test RegistryStore primitives."""

    def test_set_has_get(self):
        """Test storing and retrieving a record."""
        store = RegistryStore()
        record = RegistryRecord()

        assert not store.has("auth")
        store.set("auth", record)

        assert store.has("auth")
        assert "auth" in store
        assert store.get("auth") is record
        assert len(store) == 1
        assert store.ids() == ["auth"]

    def test_get_missing_raises(self):
        """Test that unknown IDs raise RegistryNotFound with the ID in the message."""
        store = RegistryStore()
        with pytest.raises(RegistryNotFound, match="never-created") as exc_info:
            store.get("never-created")
        assert exc_info.value.registry_id == "never-created"

    def test_get_does_not_create(self):
        """Test that a failed lookup leaves the store untouched."""
        store = RegistryStore()
        with pytest.raises(RegistryNotFound):
            store.get("ghost")
        assert not store.has("ghost")
        assert len(store) == 0

    def test_set_replaces(self):
        """Test that set() replaces an existing record."""
        store = RegistryStore()
        old, new = RegistryRecord(), RegistryRecord()
        store.set("id", old)
        store.set("id", new)
        assert store.get("id") is new
        assert len(store) == 1

    def test_clear(self):
        """Test that clear() removes every record."""
        store = RegistryStore()
        store.set("a", RegistryRecord())
        store.set("b", RegistryRecord())

        store.clear()

        assert len(store) == 0
        with pytest.raises(RegistryNotFound, match='"a"'):
            store.get("a")

    def test_stores_are_independent(self):
        """Test that separate stores never see each other's records."""
        first, second = RegistryStore(), RegistryStore()
        first.set("shared", RegistryRecord())
        assert not second.has("shared")

    def test_lock_is_reentrant(self):
        """Test that the store lock can be held while calling set()."""
        store = RegistryStore()
        with store.lock:
            store.set("nested", RegistryRecord())
        assert store.has("nested")

    def test_concurrent_set(self):
        """Test that concurrent writers all land in the store."""
        store = RegistryStore()

        def writer(index):
            store.set(f"registry-{index}", RegistryRecord())

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store) == 20

    def test_repr(self):
        store = RegistryStore()
        store.set("x", RegistryRecord())
        assert repr(store) == "RegistryStore(ids=['x'])"


def test_default_store_is_a_registry_store():
    assert isinstance(REGISTRY_STORE, RegistryStore)
