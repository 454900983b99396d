"""Tests for the offline key-value file and local guest store."""

import json

import pytest

from checkin.storage.local_store import KeyValueFile, LocalGuestStore

from .conftest import make_guest


@pytest.fixture
def kv(tmp_path):
    return KeyValueFile(tmp_path / "storage.json")


@pytest.fixture
def store(kv):
    return LocalGuestStore(kv, key="partyGuests")


class TestKeyValueFile:
    def test_missing_file_reads_none(self, kv):
        assert kv.get("anything") is None

    def test_set_get_delete(self, kv):
        kv.set("appConfigured", "true")
        assert kv.get("appConfigured") == "true"
        kv.delete("appConfigured")
        assert kv.get("appConfigured") is None

    def test_keys_are_independent(self, kv):
        kv.set("a", "1")
        kv.set("b", "2")
        kv.delete("a")
        assert kv.get("b") == "2"

    def test_creates_parent_directory(self, tmp_path):
        kv = KeyValueFile(tmp_path / "nested" / "dir" / "storage.json")
        kv.set("k", "v")
        assert kv.get("k") == "v"

    def test_garbage_file_treated_as_empty(self, kv):
        kv.path.write_text("{not json", encoding="utf-8")
        assert kv.get("k") is None
        kv.set("k", "v")
        assert kv.get("k") == "v"

    def test_non_object_file_treated_as_empty(self, kv):
        kv.path.write_text("[1, 2]", encoding="utf-8")
        assert kv.get("k") is None

    def test_non_utf8_file_treated_as_empty(self, kv):
        kv.path.write_bytes(b'{"partyGuests": "\xff\xfe"}')
        assert kv.get("partyGuests") is None
        kv.set("k", "v")
        assert kv.get("k") == "v"


class TestLocalGuestStore:
    async def test_empty_when_nothing_stored(self, store):
        assert await store.list_guests() == []
        result = store.load()
        assert result.guests == []
        assert result.corrupted is False

    async def test_add_appends_in_insertion_order(self, store):
        await store.add_guest(make_guest("g1", minutes=5))
        await store.add_guest(make_guest("g2", minutes=1))
        guests = await store.list_guests()
        assert [g.id for g in guests] == ["g1", "g2"]

    async def test_persisted_as_serialized_list(self, store, kv):
        await store.add_guest(make_guest("g1", companions=2))
        stored = json.loads(kv.get("partyGuests"))
        assert stored[0]["id"] == "g1"
        assert stored[0]["companions"] == 2
        assert "entryTime" in stored[0]

    async def test_survives_new_instance(self, store, kv):
        await store.add_guest(make_guest("g1"))
        again = LocalGuestStore(kv, key="partyGuests")
        assert [g.id for g in await again.list_guests()] == ["g1"]

    async def test_delete_by_id(self, store):
        await store.add_guest(make_guest("g1"))
        await store.add_guest(make_guest("g2"))
        await store.delete_guest("g1")
        assert [g.id for g in await store.list_guests()] == ["g2"]

    async def test_delete_missing_id_is_noop(self, store):
        await store.add_guest(make_guest("g1"))
        await store.delete_guest("nope")
        assert [g.id for g in await store.list_guests()] == ["g1"]

    async def test_clear_then_list_is_empty(self, store):
        await store.add_guest(make_guest("g1"))
        await store.add_guest(make_guest("g2"))
        await store.clear_guests()
        assert await store.list_guests() == []

    async def test_clear_leaves_other_keys(self, store, kv):
        kv.set("appConfigured", "true")
        await store.add_guest(make_guest("g1"))
        await store.clear_guests()
        assert kv.get("appConfigured") == "true"


class TestLocalGuestStoreCorruption:
    async def test_invalid_json_is_empty_but_flagged(self, store, kv):
        kv.set("partyGuests", "{oops")
        assert await store.list_guests() == []
        result = store.load()
        assert result.corrupted is True
        assert "invalid JSON" in result.detail

    async def test_non_list_is_empty_but_flagged(self, store, kv):
        kv.set("partyGuests", json.dumps({"id": "g1"}))
        assert await store.list_guests() == []
        assert store.load().corrupted is True

    async def test_malformed_records_skipped(self, store, kv):
        good = make_guest("g1").to_document()
        kv.set("partyGuests", json.dumps([good, {"name": "no id"}, 42]))
        result = store.load()
        assert [g.id for g in result.guests] == ["g1"]
        assert result.corrupted is True
        assert "2 malformed" in result.detail

    async def test_add_after_corruption_starts_fresh(self, store, kv):
        kv.set("partyGuests", "{oops")
        await store.add_guest(make_guest("g1"))
        result = store.load()
        assert [g.id for g in result.guests] == ["g1"]
        assert result.corrupted is False

    async def test_non_utf8_file_lists_empty_and_recovers(self, store, kv):
        kv.path.write_bytes(b"\xff\xfe garbage")
        assert await store.list_guests() == []
        await store.add_guest(make_guest("g1"))
        assert [g.id for g in await store.list_guests()] == ["g1"]
