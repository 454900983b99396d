"""Guest record model shared by both storage adapters.

The persisted document shape is identical in the local key-value file and in
Firestore::

    {"id": "...", "name": "...", "phone": "...", "companions": 2,
     "timestamp": "2024-01-01T10:00:00Z", "entryTime": "1/1/2024, 10:00:00"}

``timestamp`` is the machine-sortable instant; ``entryTime`` is the
human-readable rendering captured at creation and never recomputed.
"""

from __future__ import annotations

import math
import re
import uuid
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator

from checkin.errors import GuestValidationError

# Leading integer, the way an HTML number input's raw text is read.
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class GuestRecord(BaseModel):
    """One check-in entry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str
    phone: str = ""
    companions: int = Field(0, ge=0)
    timestamp: datetime
    entry_time: str = Field("", alias="entryTime")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v

    @field_validator("phone", mode="before")
    @classmethod
    def normalize_phone(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("companions", mode="before")
    @classmethod
    def normalize_companions(cls, v: Any) -> int:
        return parse_companions(v)

    @field_validator("timestamp")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        # Naive timestamps are taken as UTC so every record sorts together.
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_document(self) -> dict[str, Any]:
        """Serialize to the persisted document shape."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "GuestRecord":
        return cls.model_validate(doc)


def parse_companions(raw: Any) -> int:
    """Coerce a companion count from form input.

    Returns 0 for absent or non-numeric input, the leading integer for
    strings such as ``"3 personas"``, and never a negative number.
    """
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return max(raw, 0)
    if isinstance(raw, float):
        return max(int(raw), 0) if math.isfinite(raw) else 0
    match = _LEADING_INT.match(str(raw))
    if match is None:
        return 0
    return max(int(match.group(1)), 0)


def format_entry_time(moment: datetime, tz_name: str = "") -> str:
    """Render an instant the way ``es-ES`` locale formatting does.

    Example: ``18/10/2026, 9:05:03``.  ``tz_name`` selects the IANA zone;
    empty means the server's local time.
    """
    local = moment.astimezone(ZoneInfo(tz_name)) if tz_name else moment.astimezone()
    return (
        f"{local.day}/{local.month}/{local.year}, "
        f"{local.hour}:{local.minute:02d}:{local.second:02d}"
    )


def new_guest(
    name: str,
    phone: str | None = None,
    companions: Any = None,
    *,
    now: datetime | None = None,
    tz_name: str = "",
) -> GuestRecord:
    """Build a fresh guest record with a generated id and both timestamps.

    Raises:
        GuestValidationError: If ``name`` is empty after trimming.
    """
    if not name or not name.strip():
        raise GuestValidationError("El nombre es obligatorio")
    moment = now or datetime.now(timezone.utc)
    return GuestRecord(
        id=str(uuid.uuid4()),
        name=name,
        phone=phone,
        companions=companions,
        timestamp=moment,
        entry_time=format_entry_time(moment, tz_name),
    )
