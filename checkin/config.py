"""Centralized configuration via pydantic-settings.

All paths, storage keys, and tuning knobs live here.
Override any value via environment variable (e.g., ``LOCAL_STORE_PATH=/tmp/guests.json``).
"""

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- App ---
    APP_NAME: str = "Party Check-in"
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"

    # --- Local store ---
    LOCAL_STORE_PATH: str = "data/local_storage.json"  # key-value file standing in for browser storage
    LOCAL_GUESTS_KEY: str = "partyGuests"

    # --- Remote store ---
    REMOTE_CONFIG_PATH: str = "config/firebase-config.json"
    FIRESTORE_COLLECTION: str = "guests"
    RECONNECT_INTERVAL_SECONDS: int = 0  # 0 = no periodic reconnect, only explicit triggers

    # --- Presentation ---
    RECENT_GUESTS_LIMIT: int = 10
    NOTIFICATION_TTL_SECONDS: float = 3.0
    ENTRY_TIME_ZONE: str = ""  # IANA name; empty = server local time

    # --- API ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:8080"]
    MAX_REQUEST_BODY_SIZE: int = 65536  # 64 KB max request body

    # --- Observability ---
    LOG_LEVEL: str = "INFO"

    model_config = {"env_prefix": "", "case_sensitive": True}

    @model_validator(mode="after")
    def validate_presentation(self) -> "Settings":
        """Reject limits that would hide every guest or every banner."""
        if self.RECENT_GUESTS_LIMIT < 1:
            raise ValueError(
                f"RECENT_GUESTS_LIMIT ({self.RECENT_GUESTS_LIMIT}) must be at least 1"
            )
        if self.NOTIFICATION_TTL_SECONDS <= 0:
            raise ValueError(
                f"NOTIFICATION_TTL_SECONDS ({self.NOTIFICATION_TTL_SECONDS}) must be positive"
            )
        return self

    @model_validator(mode="after")
    def validate_reconnect_interval(self) -> "Settings":
        if self.RECONNECT_INTERVAL_SECONDS < 0:
            raise ValueError(
                f"RECONNECT_INTERVAL_SECONDS ({self.RECONNECT_INTERVAL_SECONDS}) must be >= 0"
            )
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
