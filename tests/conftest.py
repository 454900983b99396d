"""Shared test fixtures for check-in tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from checkin.data.models import GuestRecord


@pytest.fixture(autouse=True)
def _isolated_paths(tmp_path, monkeypatch):
    """Point every file the app touches at a per-test temp directory."""
    monkeypatch.setenv("LOCAL_STORE_PATH", str(tmp_path / "local_storage.json"))
    monkeypatch.setenv("REMOTE_CONFIG_PATH", str(tmp_path / "firebase-config.json"))


@pytest.fixture(autouse=True)
def _clear_singleton_caches():
    """Reset cached Settings before and after each test."""
    from checkin.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Guest helpers
# ---------------------------------------------------------------------------

BASE_TIME = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


def make_guest(guest_id="g1", name="Ana", phone="555", companions=0, minutes=0):
    """Build a GuestRecord created ``minutes`` after BASE_TIME."""
    moment = BASE_TIME + timedelta(minutes=minutes)
    return GuestRecord(
        id=guest_id,
        name=name,
        phone=phone,
        companions=companions,
        timestamp=moment,
        entry_time=f"1/1/2024, {moment.hour}:{moment.minute:02d}:00",
    )


# ---------------------------------------------------------------------------
# In-memory Firestore fake (async client surface used by FirestoreGuestStore)
# ---------------------------------------------------------------------------


class FakeFirestoreError(Exception):
    """Stands in for a google.api_core connectivity/permission error."""


class FakeSnapshot:
    def __init__(self, doc_id, data, reference):
        self.id = doc_id
        self._data = data
        self.reference = reference

    def to_dict(self):
        return dict(self._data)


class FakeDocRef:
    def __init__(self, client, collection, doc_id):
        self._client = client
        self._collection = collection
        self.id = doc_id

    async def set(self, data):
        self._client._check("set")
        self._client.store.setdefault(self._collection, {})[self.id] = dict(data)

    async def delete(self):
        self._client._check("delete")
        self._client.store.get(self._collection, {}).pop(self.id, None)


class FakeCollection:
    def __init__(self, client, name):
        self._client = client
        self._name = name

    def document(self, doc_id):
        return FakeDocRef(self._client, self._name, doc_id)

    async def stream(self):
        self._client._check("stream")
        docs = list(self._client.store.get(self._name, {}).items())
        for doc_id, data in docs:
            yield FakeSnapshot(doc_id, data, FakeDocRef(self._client, self._name, doc_id))


class FakeBatch:
    def __init__(self, client):
        self._client = client
        self._refs = []

    def delete(self, ref):
        self._refs.append(ref)

    async def commit(self):
        self._client._check("commit")
        self._client.commits.append(len(self._refs))
        for ref in self._refs:
            self._client.store.get(ref._collection, {}).pop(ref.id, None)
        self._refs = []


class FakeFirestoreClient:
    """Dict-backed stand-in for ``google.cloud.firestore.AsyncClient``.

    Add an operation name (``stream``, ``set``, ``delete``, ``commit``) to
    ``failing`` to make it raise ``FakeFirestoreError``.
    """

    def __init__(self):
        self.store: dict[str, dict[str, dict]] = {}
        self.failing: set[str] = set()
        self.commits: list[int] = []
        self.closed = False

    def _check(self, op):
        if op in self.failing:
            raise FakeFirestoreError(f"{op} unavailable")

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_firestore():
    """Patch the Firestore client factory to hand out one in-memory fake."""
    client = FakeFirestoreClient()
    with patch(
        "checkin.storage.remote_store._build_firestore_client",
        return_value=client,
    ) as factory:
        client.factory = factory
        yield client


@pytest.fixture
def remote_config():
    return {"projectId": "party-test", "apiKey": "not-a-secret"}
