"""Online guest store backed by a Firestore collection.

Each guest is one document whose id is the caller-generated guest id, so
the id survives the round trip unchanged.  Firestore returns documents in
its own order (no server-side sort); the controller re-sorts for display.

``init(config)`` must succeed before any CRUD call.  ``config`` is the
connection descriptor loaded at startup, in one of two shapes:

- Firebase web config: ``{"projectId": ..., "databaseId"?: ..., "collection"?: ...}``
  using Application Default Credentials.
- Service-account key: ``{"type": "service_account", "project_id": ..., ...}``
  used directly as credentials.

The ``google.cloud.firestore`` import is lazy so the module imports cheaply
and the offline path never touches the GCP SDK.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

from pydantic import ValidationError

from checkin.data.models import GuestRecord
from checkin.errors import RemoteConfigError, StoreError, StoreNotInitializedError
from checkin.storage.base import GuestStore

logger = logging.getLogger(__name__)

# Firestore rejects batches with more than 500 writes.
_BATCH_LIMIT = 500


def _build_firestore_client(
    project: str,
    database: str | None,
    credentials_info: dict[str, Any] | None,
) -> Any:
    """Create a Firestore ``AsyncClient`` for the descriptor."""
    from google.cloud.firestore import AsyncClient

    kwargs: dict[str, Any] = {"project": project}
    if database:
        kwargs["database"] = database
    if credentials_info is not None:
        from google.oauth2 import service_account

        kwargs["credentials"] = service_account.Credentials.from_service_account_info(
            credentials_info
        )
    return AsyncClient(**kwargs)


async def _close_client(client: Any) -> None:
    """Release a replaced client's channel.  Failures are logged, not raised."""
    try:
        result = client.close()
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.warning("Closing the previous Firestore client failed", exc_info=True)


def describe_remote_config(config: Any) -> tuple[str, str | None, str | None, dict[str, Any] | None]:
    """Extract ``(project, database, collection, credentials_info)`` from a descriptor.

    Raises:
        RemoteConfigError: If the descriptor is not an object or names no project.
    """
    if not isinstance(config, dict):
        raise RemoteConfigError("Remote config must be a JSON object")

    project = config.get("projectId") or config.get("project_id")
    if not project or not isinstance(project, str):
        raise RemoteConfigError("Remote config has no projectId")

    credentials_info = config if config.get("type") == "service_account" else None
    database = config.get("databaseId") or config.get("database") or None
    collection = config.get("collection") or None
    return project, database, collection, credentials_info


class FirestoreGuestStore(GuestStore):
    """Guest collection stored in Firestore.

    Args:
        collection: Default collection name, overridable by the descriptor's
            ``collection`` key.
    """

    name = "firestore"

    def __init__(self, collection: str = "guests") -> None:
        self._default_collection = collection
        self._collection_name = collection
        self._client: Any | None = None
        self._project: str | None = None

    @property
    def initialized(self) -> bool:
        return self._client is not None

    @property
    def project(self) -> str | None:
        return self._project

    async def init(self, config: Any) -> None:
        """Connect using ``config``.  Must succeed before any CRUD call.

        Raises:
            RemoteConfigError: The descriptor is malformed.
            StoreError: The client could not be created.
        """
        project, database, collection, credentials_info = describe_remote_config(config)
        try:
            client = _build_firestore_client(project, database, credentials_info)
        except Exception as exc:
            logger.warning("Firestore client init failed for project %s", project, exc_info=True)
            raise StoreError(f"Could not connect to Firestore project {project}") from exc

        previous, self._client = self._client, client
        self._project = project
        if previous is not None and previous is not client:
            await _close_client(previous)
        self._collection_name = collection or self._default_collection
        logger.info(
            "Firestore guest store ready: project=%s database=%s collection=%s",
            project,
            database or "(default)",
            self._collection_name,
        )

    def _collection(self) -> Any:
        if self._client is None:
            raise StoreNotInitializedError("Firestore store used before init()")
        return self._client.collection(self._collection_name)

    async def list_guests(self) -> list[GuestRecord]:
        collection = self._collection()
        guests: list[GuestRecord] = []
        try:
            async for snapshot in collection.stream():
                doc = snapshot.to_dict() or {}
                doc.setdefault("id", snapshot.id)
                try:
                    guests.append(GuestRecord.from_document(doc))
                except ValidationError:
                    logger.warning("Skipping malformed Firestore guest document %s", snapshot.id)
        except Exception as exc:
            logger.error("Firestore list failed", exc_info=True)
            raise StoreError("Could not read guests from Firestore") from exc
        return guests

    async def add_guest(self, record: GuestRecord) -> None:
        collection = self._collection()
        try:
            await collection.document(record.id).set(record.to_document())
        except Exception as exc:
            logger.error("Firestore write failed for guest %s", record.id, exc_info=True)
            raise StoreError("Could not save guest to Firestore") from exc
        logger.info("Stored guest %s in Firestore", record.id)

    async def delete_guest(self, guest_id: str) -> None:
        # Deleting a missing document is a no-op in Firestore.
        collection = self._collection()
        try:
            await collection.document(guest_id).delete()
        except Exception as exc:
            logger.error("Firestore delete failed for guest %s", guest_id, exc_info=True)
            raise StoreError("Could not delete guest from Firestore") from exc
        logger.info("Deleted guest %s from Firestore", guest_id)

    async def clear_guests(self) -> None:
        collection = self._collection()
        deleted = 0
        try:
            batch = self._client.batch()
            pending = 0
            async for snapshot in collection.stream():
                batch.delete(snapshot.reference)
                pending += 1
                if pending == _BATCH_LIMIT:
                    await batch.commit()
                    deleted += pending
                    batch = self._client.batch()
                    pending = 0
            if pending:
                await batch.commit()
                deleted += pending
        except Exception as exc:
            logger.error("Firestore clear failed after %d deletions", deleted, exc_info=True)
            raise StoreError("Could not clear guests in Firestore") from exc
        logger.info("Cleared %d guest(s) from Firestore", deleted)
