"""Registration controller: routes guest CRUD to the active store.

Holds the in-memory cache of the guest list and the connection mode.

Modes: offline (local store) -> reconnecting -> online (Firestore).
The startup decision is made once by ``initialize()``.  Afterwards the mode
only changes through ``reconnect()``, an explicit external trigger (API call,
saved config, or the optional periodic timer).  A failed mutation never
flips the mode on its own.

Every mutation, its cache refresh, and every reconnect run under one
``asyncio.Lock`` so concurrent triggers cannot interleave.  After a
successful write the cache is replaced by a full re-read from the same
store; it is never patched incrementally.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from checkin.data.models import GuestRecord, new_guest
from checkin.errors import RegistrationError
from checkin.registration.config_source import RemoteConfigSource
from checkin.storage.base import GuestStore
from checkin.storage.local_store import LocalGuestStore
from checkin.storage.remote_store import FirestoreGuestStore

logger = logging.getLogger(__name__)


class ConnectionMode(str, Enum):
    OFFLINE = "offline"
    ONLINE = "online"
    RECONNECTING = "reconnecting"


@dataclass(frozen=True)
class ConnectOutcome:
    """Result of a startup or reconnect decision, ready for a banner."""

    mode: ConnectionMode
    ok: bool
    message: str
    local_data_corrupted: bool = False


class RegistrationController:
    """Owns the guest cache and dispatches every CRUD call.

    Args:
        local: Offline store, always available.
        remote: Online store, usable only after a successful ``init``.
        config_source: Where remote descriptors are loaded from.
        tz_name: IANA zone used to render ``entryTime`` for new guests.
    """

    def __init__(
        self,
        local: LocalGuestStore,
        remote: FirestoreGuestStore,
        config_source: RemoteConfigSource,
        *,
        tz_name: str = "",
    ) -> None:
        self._local = local
        self._remote = remote
        self._config_source = config_source
        self._tz_name = tz_name
        self._mode = ConnectionMode.OFFLINE
        self._cache: tuple[GuestRecord, ...] = ()
        self._lock = asyncio.Lock()
        self._initialized = False

    @property
    def mode(self) -> ConnectionMode:
        return self._mode

    @property
    def guests(self) -> tuple[GuestRecord, ...]:
        """Snapshot of the active store after the last successful operation."""
        return self._cache

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def config_source(self) -> RemoteConfigSource:
        return self._config_source

    def _active_store(self) -> GuestStore:
        if self._mode is ConnectionMode.ONLINE:
            return self._remote
        return self._local

    # ------------------------------------------------------------------
    # Connection decisions
    # ------------------------------------------------------------------

    def _go_offline(self, message: str, ok: bool) -> ConnectOutcome:
        result = self._local.load()
        self._cache = tuple(result.guests)
        self._mode = ConnectionMode.OFFLINE
        if result.corrupted:
            logger.warning("Local guest data corrupted (%s); continuing offline", result.detail)
        return ConnectOutcome(
            mode=self._mode,
            ok=ok,
            message=message,
            local_data_corrupted=result.corrupted,
        )

    async def _connect(self, config: dict[str, Any] | None) -> ConnectOutcome:
        if config is None:
            logger.info("No remote config; using local store")
            return self._go_offline("Modo sin conexión - Datos locales", ok=True)

        self._mode = ConnectionMode.RECONNECTING
        try:
            await self._remote.init(config)
            guests = await self._remote.list_guests()
        except Exception:
            logger.warning("Remote store unavailable; falling back to local store", exc_info=True)
            return self._go_offline("Error de conexión - Usando modo offline", ok=False)

        self._cache = tuple(guests)
        self._mode = ConnectionMode.ONLINE
        logger.info("Online mode: %d guest(s) loaded from Firestore", len(guests))
        return ConnectOutcome(
            mode=self._mode,
            ok=True,
            message="Conectado a Firestore - Modo en línea",
        )

    async def initialize(self) -> ConnectOutcome:
        """One-shot startup decision between online and offline mode."""
        async with self._lock:
            if self._initialized:
                raise RuntimeError("RegistrationController.initialize() called twice; use reconnect()")
            outcome = await self._connect(self._config_source.load())
            self._initialized = True
            return outcome

    async def reconnect(self, config: dict[str, Any] | None = None) -> ConnectOutcome:
        """Re-run the connection decision on an external trigger.

        Uses ``config`` when given, otherwise reloads the configured source.
        Without any descriptor the current mode and cache are kept.
        """
        async with self._lock:
            if config is None:
                config = self._config_source.load()
            if config is None:
                return ConnectOutcome(
                    mode=self._mode,
                    ok=False,
                    message="No hay configuración remota",
                )
            return await self._connect(config)

    async def reconnect_periodically(self, interval: float) -> None:
        """Retry going online every ``interval`` seconds while offline."""
        while True:
            await asyncio.sleep(interval)
            if self._mode is not ConnectionMode.OFFLINE:
                continue
            try:
                outcome = await self.reconnect()
            except Exception:
                logger.warning("Periodic reconnect failed; will retry", exc_info=True)
                continue
            logger.info("Periodic reconnect: %s (%s)", outcome.mode.value, outcome.message)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def _mutate(
        self,
        operation: str,
        action: Callable[[GuestStore], Awaitable[None]],
        failure_message: str,
    ) -> None:
        async with self._lock:
            store = self._active_store()
            try:
                await action(store)
                guests = await store.list_guests()
            except Exception as exc:
                logger.warning("%s failed on %s store", operation, store.name, exc_info=True)
                raise RegistrationError(operation, failure_message) from exc
            self._cache = tuple(guests)

    async def register(
        self,
        name: str,
        phone: str | None = None,
        companions: Any = None,
    ) -> GuestRecord:
        """Create a guest record and persist it to the active store.

        Raises:
            GuestValidationError: ``name`` is empty.
            RegistrationError: The store rejected the write or the refresh.
        """
        record = new_guest(name, phone, companions, tz_name=self._tz_name)
        await self._mutate(
            "register",
            lambda store: store.add_guest(record),
            "Error al registrar. Intenta nuevamente.",
        )
        return record

    async def delete_guest(self, guest_id: str) -> None:
        await self._mutate(
            "delete",
            lambda store: store.delete_guest(guest_id),
            "Error al eliminar registro",
        )

    async def clear_all(self) -> None:
        await self._mutate(
            "clear",
            lambda store: store.clear_guests(),
            "Error al eliminar registros",
        )
