# barber_booking/schemas.py

"""Request/response shapes.

Clients send field names in several spellings (camelCase, snake_case and a
few Spanish legacy names). Each request model maps every accepted spelling
onto one canonical field, so the services only ever see canonical names.
Missing values are left as None and reported by the services as a 400.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import Role

RawTime = Optional[Union[str, int, float]]


def _alias(*names: str):
    return Field(default=None, validation_alias=AliasChoices(*names))


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: Optional[str] = None
    role: Role
    shop_id: Optional[int] = None


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    name: Optional[str] = None
    role: Role
    shop_id: Optional[int] = None


class AppointmentCreate(BaseModel):
    starts_at: RawTime = _alias("date", "startTime", "start_time")
    client_id: Optional[int] = _alias("clientId", "client_id")
    barber_id: Optional[int] = _alias("barberId", "barber_id")
    shop_id: Optional[int] = _alias("shopId", "shop_id")
    service_id: Optional[int] = _alias("serviceId", "service_id")
    status: Optional[str] = _alias("status", "estado")
    notes: Optional[str] = _alias("notes", "notas")


class DayOffCreate(BaseModel):
    starts_at: RawTime = _alias("date", "startTime", "start_time")
    barber_id: Optional[int] = _alias("barberId", "barber_id")
    shop_id: Optional[int] = _alias("shopId", "shop_id")
    notes: Optional[str] = _alias("notes", "razon", "reason")


class LeaveEarlyCreate(BaseModel):
    starts_at: RawTime = _alias("startTime", "start_time")
    day: Optional[str] = _alias("date")
    time: Optional[str] = _alias("time")
    barber_id: Optional[int] = _alias("barberId", "barber_id")
    shop_id: Optional[int] = _alias("shopId", "shop_id")
    notes: Optional[str] = _alias("notes")

    @model_validator(mode="after")
    def combine_date_and_time(self):
        # date + time (HH:MM) is accepted in place of a full startTime
        if not self.starts_at and self.day and self.time:
            t = str(self.time).strip()
            if t.count(":") == 1:
                t = f"{t}:00"
            self.starts_at = f"{str(self.day).strip()}T{t}"
        elif not self.starts_at and self.day:
            self.starts_at = self.day
        return self


class ProposeAdvance(BaseModel):
    new_time: RawTime = _alias("newTime", "new_time")


class ProposalResponse(BaseModel):
    accepted: bool = False


class NotesUpdate(BaseModel):
    notes: Optional[str] = _alias("notes", "notesBarber", "notes_barber")


class PaymentUpdate(BaseModel):
    payment_method: Optional[str] = _alias("paymentMethod", "payment_method")
    payment_status: Optional[str] = _alias("paymentStatus", "payment_status")


class BreakItem(BaseModel):
    day: str
    type: str = Field(default="break", validation_alias=AliasChoices("type", "break_type"))
    start_time: str = Field(validation_alias=AliasChoices("startTime", "start_time"))
    end_time: str = Field(validation_alias=AliasChoices("endTime", "end_time"))
    enabled: bool = True


class BreaksUpdate(BaseModel):
    breaks: List[BreakItem] = []


class BreakPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    day: str
    break_type: str
    start_time: str
    end_time: str
    enabled: bool


class BarberBreaks(BaseModel):
    barber_id: int
    breaks: List[BreakPublic]


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AppointmentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    uuid: str
    date: datetime
    actual_end_time: Optional[datetime] = None
    status: str
    client_id: Optional[int] = None
    barber_id: Optional[int] = None
    shop_id: Optional[int] = None
    service_id: Optional[int] = None
    hidden_for_client: bool = False
    client_reviewed: bool = False
    notes: Optional[str] = None
    notes_barber: Optional[str] = None
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None
    payment_marked_at: Optional[datetime] = None
    payment_marked_by: Optional[int] = None

    @field_validator("date", "actual_end_time", "payment_marked_at")
    @classmethod
    def as_utc(cls, value):
        return _as_utc(value)


class NotificationPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: str
    title: str
    message: str
    status: str
    payload: dict[str, Any] = {}
    client_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: datetime

    @field_validator("deleted_at", "created_at")
    @classmethod
    def as_utc(cls, value):
        return _as_utc(value)


class ProposalCreated(BaseModel):
    message: str = "Reschedule proposal created"
    notification: NotificationPublic
    conversation_id: Optional[int] = Field(default=None, serialization_alias="conversationId")


class ProposalResolved(BaseModel):
    notification: NotificationPublic
    appointment: Optional[AppointmentPublic] = None


class DeleteResult(BaseModel):
    deleted: int
    id: Optional[int] = None


class ClearResult(BaseModel):
    success: bool = True
    affected: int
