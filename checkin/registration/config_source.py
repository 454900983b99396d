"""Where the remote connection descriptor comes from.

Resolution order at startup:
1. The descriptor file at ``REMOTE_CONFIG_PATH``.
2. A descriptor previously saved through ``POST /config/remote``, kept in the
   local key-value file under ``firebaseConfig``.

Absence or a read failure is never an error: it just selects offline mode.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from checkin.storage.local_store import KeyValueFile

logger = logging.getLogger(__name__)

SAVED_CONFIG_KEY = "firebaseConfig"
CONFIGURED_FLAG_KEY = "appConfigured"


class RemoteConfigSource:
    def __init__(self, kv: KeyValueFile, path: str | Path) -> None:
        self._kv = kv
        self._path = Path(path)

    def _from_file(self) -> dict[str, Any] | None:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.info("No remote config at %s", self._path)
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("Remote config at %s unreadable; ignoring", self._path, exc_info=True)
            return None
        if not isinstance(data, dict):
            logger.warning("Remote config at %s is not a JSON object; ignoring", self._path)
            return None
        return data

    def _from_saved(self) -> dict[str, Any] | None:
        raw = self._kv.get(SAVED_CONFIG_KEY)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Saved remote config is not valid JSON; ignoring")
            return None
        return data if isinstance(data, dict) else None

    def load(self) -> dict[str, Any] | None:
        """Return the first descriptor found, or None for offline mode."""
        config = self._from_file()
        if config is not None:
            return config
        config = self._from_saved()
        if config is not None:
            logger.info("Using previously saved remote config")
        return config

    def save(self, config: dict[str, Any]) -> None:
        """Persist a descriptor and mark the app as configured."""
        self._kv.set(SAVED_CONFIG_KEY, json.dumps(config))
        self._kv.set(CONFIGURED_FLAG_KEY, "true")

    def mark_configured(self) -> None:
        """Record that the operator chose a mode (used for offline setup)."""
        self._kv.set(CONFIGURED_FLAG_KEY, "true")

    @property
    def is_configured(self) -> bool:
        return self._kv.get(CONFIGURED_FLAG_KEY) == "true"
