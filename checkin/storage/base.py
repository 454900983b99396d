"""Pluggable guest store.

Two interchangeable backends share this contract:

- ``LocalGuestStore``: a JSON key-value file on the server's disk (offline mode).
- ``FirestoreGuestStore``: a Firestore collection (online mode).

The controller only ever talks to ``GuestStore`` and picks the backend
once at startup (or on an explicit reconnect).
"""

from abc import ABC, abstractmethod

from checkin.data.models import GuestRecord


class GuestStore(ABC):
    """Abstract CRUD over one collection of guest records.

    There is no update-in-place: records are added, deleted by id, or
    cleared in bulk.  ``list_guests`` returns the authoritative collection
    in storage order; callers re-sort for display.
    """

    name: str = "abstract"

    @abstractmethod
    async def list_guests(self) -> list[GuestRecord]: ...

    @abstractmethod
    async def add_guest(self, record: GuestRecord) -> None: ...

    @abstractmethod
    async def delete_guest(self, guest_id: str) -> None: ...

    @abstractmethod
    async def clear_guests(self) -> None: ...
