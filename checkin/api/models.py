"""Pydantic v2 request/response models for the check-in API."""

from typing import Any

from pydantic import BaseModel, Field

from checkin.data.models import GuestRecord


class GuestIn(BaseModel):
    """Registration form submission."""

    name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=50)
    companions: Any = None  # raw form value; parse_companions turns anything unparseable into 0


class GuestOut(BaseModel):
    id: str
    name: str
    phone: str
    companions: int
    timestamp: str
    entryTime: str

    @classmethod
    def from_record(cls, record: GuestRecord) -> "GuestOut":
        return cls.model_validate(record.to_document())


class GuestListResponse(BaseModel):
    """Stats plus the most recent guests, newest first."""

    mode: str
    total_guests: int
    total_companions: int
    guests: list[GuestOut]


class RegisterResponse(BaseModel):
    guest: GuestOut
    message: str


class ActionResponse(BaseModel):
    status: str
    message: str


class ConnectResponse(BaseModel):
    """Outcome of a startup/reconnect decision."""

    mode: str
    ok: bool
    message: str
    local_data_corrupted: bool = False


class ConfigStatusResponse(BaseModel):
    configured: bool
    mode: str
    show_config: bool


class NotificationOut(BaseModel):
    level: str
    message: str


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    mode: str
    guest_count: int


class LiveResponse(BaseModel):
    status: str = "alive"
