"""Transient success/error banners.

Banners live in a ``TTLCache`` and disappear on their own after
``NOTIFICATION_TTL_SECONDS`` (3 s by default), the same auto-dismiss a
browser banner gets from a timeout.
"""

from __future__ import annotations

import itertools
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from cachetools import TTLCache

Level = Literal["success", "error"]

_PREFIX: dict[str, str] = {"success": "✓ ", "error": "✗ "}


@dataclass(frozen=True)
class Notification:
    level: Level
    message: str


class Notifier:
    """Holds the banners currently visible, oldest first."""

    def __init__(
        self,
        ttl: float = 3.0,
        maxsize: int = 50,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._banners: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._seq = itertools.count()

    def _push(self, level: Level, message: str) -> Notification:
        note = Notification(level=level, message=_PREFIX[level] + message)
        self._banners[next(self._seq)] = note
        return note

    def success(self, message: str) -> Notification:
        return self._push("success", message)

    def error(self, message: str) -> Notification:
        return self._push("error", message)

    def active(self) -> list[Notification]:
        self._banners.expire()
        return [self._banners[k] for k in sorted(self._banners)]

    def clear(self) -> None:
        self._banners.clear()
