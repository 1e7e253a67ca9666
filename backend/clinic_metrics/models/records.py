# record models — flat entities returned by the record store
# join fields (therapist_name, client_name, provider_name) are optional and
# resolve to "Unknown" during grouping when absent

from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

SessionStatus = Literal["completed", "scheduled", "cancelled", "no-show"]
AuthorizationStatus = Literal["active", "expired", "pending"]
BillingStatus = Literal["pending", "paid", "rejected"]

SESSION_STATUSES: tuple[str, ...] = ("completed", "scheduled", "cancelled", "no-show")


class Record(BaseModel):
    """base for all record variants, immutable once fetched"""
    id: str

    model_config = {"frozen": True}


class Session(Record):
    therapist_id: Optional[str] = None
    client_id: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    status: SessionStatus
    location_type: Optional[str] = None
    therapist_name: Optional[str] = None
    client_name: Optional[str] = None
    created_at: Optional[datetime] = None


class Client(Record):
    full_name: Optional[str] = None
    gender: Optional[str] = None
    service_preference: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class Therapist(Record):
    full_name: Optional[str] = None
    specialties: list[str] = Field(default_factory=list)
    service_type: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class Authorization(Record):
    client_id: Optional[str] = None
    provider_id: Optional[str] = None
    status: AuthorizationStatus
    start_date: date
    end_date: date
    created_at: datetime
    client_name: Optional[str] = None
    provider_name: Optional[str] = None


class BillingEntry(Record):
    session_id: Optional[str] = None
    client_id: Optional[str] = None
    amount: float = 0.0
    status: BillingStatus
    created_at: datetime
