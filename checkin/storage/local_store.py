"""Offline guest store backed by a local key-value file.

The file plays the role of browser ``localStorage``: a flat JSON object of
string keys to string values.  The guest collection is one key holding the
serialized list; the same file also carries the ``appConfigured`` flag and
the saved remote descriptor (see ``checkin.registration.config_source``).

Reads never raise.  A missing file, unreadable JSON, or a corrupted guest
value is treated as an empty collection, but ``LocalGuestStore.load()``
reports the corruption so callers can tell it apart from "no guests yet".
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from checkin.data.models import GuestRecord
from checkin.storage.base import GuestStore

logger = logging.getLogger(__name__)


class KeyValueFile:
    """String key-value space persisted as one JSON object on disk.

    Every write rewrites the whole file through a temp file and
    ``os.replace`` so a crash never leaves a half-written document.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError):
            logger.warning("Local store %s unreadable; treating as empty", self._path, exc_info=True)
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Local store %s is not valid JSON; treating as empty", self._path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Local store %s is not a JSON object; treating as empty", self._path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self._path)

    def get(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)


@dataclass
class LoadResult:
    """Outcome of reading the local guest collection.

    ``corrupted`` is True when stored data existed but (part of) it could
    not be decoded; ``guests`` then holds whatever was salvageable.
    """

    guests: list[GuestRecord] = field(default_factory=list)
    corrupted: bool = False
    detail: str | None = None


class LocalGuestStore(GuestStore):
    """Guest collection stored under a single key of a ``KeyValueFile``."""

    name = "local"

    def __init__(self, kv: KeyValueFile, key: str = "partyGuests") -> None:
        self._kv = kv
        self._key = key

    def load(self) -> LoadResult:
        """Read the collection, reporting corruption instead of raising."""
        raw = self._kv.get(self._key)
        if raw is None:
            return LoadResult()

        try:
            items = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Stored guest list is not valid JSON; using empty list")
            return LoadResult(corrupted=True, detail=f"invalid JSON: {exc.msg}")
        if not isinstance(items, list):
            logger.warning("Stored guest list is not a list; using empty list")
            return LoadResult(corrupted=True, detail=f"expected list, got {type(items).__name__}")

        guests: list[GuestRecord] = []
        skipped = 0
        for item in items:
            try:
                guests.append(GuestRecord.from_document(item))
            except (ValidationError, TypeError):
                skipped += 1
        if skipped:
            logger.warning("Skipped %d malformed guest record(s) in local store", skipped)
            return LoadResult(
                guests=guests,
                corrupted=True,
                detail=f"{skipped} malformed record(s) skipped",
            )
        return LoadResult(guests=guests)

    def _save(self, guests: list[GuestRecord]) -> None:
        self._kv.set(self._key, json.dumps([g.to_document() for g in guests], ensure_ascii=False))

    async def list_guests(self) -> list[GuestRecord]:
        return self.load().guests

    async def add_guest(self, record: GuestRecord) -> None:
        guests = self.load().guests
        guests.append(record)
        self._save(guests)
        logger.info("Stored guest %s locally (%d total)", record.id, len(guests))

    async def delete_guest(self, guest_id: str) -> None:
        guests = self.load().guests
        remaining = [g for g in guests if g.id != guest_id]
        if len(remaining) == len(guests):
            logger.debug("Local delete: no guest with id %s", guest_id)
            return
        self._save(remaining)
        logger.info("Deleted guest %s locally", guest_id)

    async def clear_guests(self) -> None:
        self._kv.delete(self._key)
        logger.info("Cleared local guest list")
