"""Interchangeable guest storage backends.

Public API:

    from checkin.storage import (
        GuestStore,
        KeyValueFile,
        LocalGuestStore,
        LoadResult,
        FirestoreGuestStore,
    )
"""

from checkin.storage.base import GuestStore
from checkin.storage.local_store import KeyValueFile, LoadResult, LocalGuestStore
from checkin.storage.remote_store import FirestoreGuestStore

__all__ = [
    "FirestoreGuestStore",
    "GuestStore",
    "KeyValueFile",
    "LoadResult",
    "LocalGuestStore",
]
