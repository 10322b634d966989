# barber_booking/models.py

import uuid as uuid_lib
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index, text
from sqlalchemy.types import JSON
from sqlmodel import Column, Field, SQLModel, col

from .timenorm import storage_now


def utc_column(nullable: bool = False, index: bool = False) -> Column:
    # Values are naive UTC (see timenorm.to_storage); one Column per field.
    return Column(DateTime(timezone=False), nullable=nullable, index=index)


class Role(str, Enum):
    client = "client"
    barber = "barber"
    owner = "owner"
    admin = "admin"


class AppointmentStatus(str, Enum):
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"
    no_show = "no_show"
    day_off = "day_off"
    leave_early = "leave_early"


TERMINAL_STATUSES = {AppointmentStatus.cancelled, AppointmentStatus.completed, AppointmentStatus.no_show}
BLOCKING_STATUSES = {AppointmentStatus.day_off, AppointmentStatus.leave_early}


def is_cancelled_variant(status: Optional[str]) -> bool:
    """Legacy rows may carry suffixed values such as 'cancelled_by_client'."""
    return bool(status) and str(status).lower().startswith(AppointmentStatus.cancelled.value)


def parse_status(status: Optional[str]) -> Optional[AppointmentStatus]:
    if is_cancelled_variant(status):
        return AppointmentStatus.cancelled
    try:
        return AppointmentStatus(str(status).lower())
    except ValueError:
        return None


def cancelled_clause():
    """SQL counterpart of is_cancelled_variant."""
    return col(Appointment.status).like(f"{AppointmentStatus.cancelled.value}%")


class NotificationType(str, Enum):
    reschedule_proposal = "RESCHEDULE_PROPOSAL"


class NotificationStatus(str, Enum):
    pending = "PENDING"
    accepted = "ACCEPTED"
    rejected = "REJECTED"


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    name: Optional[str] = None
    password_hash: str
    role: str  # client, barber, owner or admin
    shop_id: Optional[int] = Field(default=None, foreign_key="barbershop.id")
    can_delete_history: bool = False


class BarberShop(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    owner_id: Optional[int] = Field(default=None, index=True)


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    shop_id: Optional[int] = Field(default=None, foreign_key="barbershop.id")
    name: str
    duration: int = 30  # minutes
    price: Optional[float] = None


class BarberBreak(SQLModel, table=True):
    __tablename__ = "barber_break"

    id: Optional[int] = Field(default=None, primary_key=True)
    barber_id: int = Field(index=True)
    day: str  # L, M, X, J, V, S, D
    break_type: str = "break"
    start_time: str  # HH:MM local
    end_time: str  # HH:MM local, earlier than start_time when crossing midnight
    enabled: bool = True


class Appointment(SQLModel, table=True):
    __table_args__ = (
        Index(
            "uq_barber_active_slot",
            "barber_id",
            "date",
            unique=True,
            sqlite_where=text("status NOT LIKE 'cancelled%'"),
            postgresql_where=text("status NOT LIKE 'cancelled%'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    uuid: str = Field(default_factory=lambda: str(uuid_lib.uuid4()), index=True, unique=True)

    date: datetime = Field(sa_column=utc_column(index=True))
    actual_end_time: Optional[datetime] = Field(default=None, sa_column=utc_column(nullable=True))
    status: str = AppointmentStatus.confirmed.value

    client_id: Optional[int] = Field(default=None, index=True)
    barber_id: Optional[int] = Field(default=None, index=True)
    shop_id: Optional[int] = Field(default=None, index=True)
    service_id: Optional[int] = Field(default=None, foreign_key="service.id")

    hidden_for_client: bool = False
    client_reviewed: bool = False
    notes: Optional[str] = None
    notes_barber: Optional[str] = None

    payment_method: Optional[str] = None
    payment_status: Optional[str] = None
    payment_marked_at: Optional[datetime] = Field(default=None, sa_column=utc_column(nullable=True))
    payment_marked_by: Optional[int] = None

    created_at: datetime = Field(default_factory=storage_now, sa_column=utc_column())
    updated_at: datetime = Field(default_factory=storage_now, sa_column=utc_column())


class AppointmentNote(SQLModel, table=True):
    __tablename__ = "appointment_note"

    id: Optional[int] = Field(default=None, primary_key=True)
    appointment_id: int = Field(index=True)
    author_id: Optional[int] = None
    text: Optional[str] = None
    created_at: datetime = Field(default_factory=storage_now, sa_column=utc_column())


class AppointmentStatusHistory(SQLModel, table=True):
    __tablename__ = "appointment_status_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    appointment_id: int = Field(index=True)
    from_status: Optional[str] = None
    to_status: str
    changed_by: Optional[int] = None
    changed_at: datetime = Field(default_factory=storage_now, sa_column=utc_column())


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    type: str
    title: str
    message: str
    status: str = NotificationStatus.pending.value
    payload: dict = Field(default_factory=dict, sa_column=Column(JSON))
    client_deleted: bool = False
    deleted_at: Optional[datetime] = Field(default=None, sa_column=utc_column(nullable=True))
    created_at: datetime = Field(default_factory=storage_now, sa_column=utc_column())
    updated_at: datetime = Field(default_factory=storage_now, sa_column=utc_column())


class Conversation(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    type: str = "client_barber"
    client_id: Optional[int] = Field(default=None, index=True)
    barber_id: Optional[int] = Field(default=None, index=True)
    appointment_id: Optional[int] = Field(default=None, index=True)
    archived_for_client: bool = False
    archived_for_barber: bool = False
    created_at: datetime = Field(default_factory=storage_now, sa_column=utc_column())


class Message(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    conversation_id: int = Field(index=True, foreign_key="conversation.id")
    sender_id: Optional[int] = None
    receiver_id: Optional[int] = None
    text: str
    is_system: bool = False
    related_action: Optional[str] = None
    related_id: Optional[str] = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=storage_now, sa_column=utc_column(index=True))
