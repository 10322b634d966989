# barber_booking/services/retention.py

"""History visibility and time-boxed deletion.

- Clients "clear" their history by hiding rows (hidden_for_client); rows
  are never deleted on their behalf.
- Admins, shop owners and opted-in barbers can permanently delete a
  barber's appointments from previous days, together with every row that
  hangs off them.
- Periodic sweeps physically delete soft-deleted notifications and chat
  messages older than the retention window, then empty conversations.
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from sqlalchemy import and_, delete, or_, update
from sqlmodel import Session, col, select

from ..config import RETENTION_DAYS
from ..db import engine, transaction
from ..deps import can_delete_barber_history, can_delete_single_appointment, is_admin, require_role
from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..models import (
    Appointment,
    AppointmentNote,
    AppointmentStatus,
    AppointmentStatusHistory,
    Conversation,
    Message,
    Notification,
    NotificationType,
    Role,
    cancelled_clause,
)
from ..timenorm import TimeNormalizer, storage_now

logger = logging.getLogger(__name__)

PRODUCT_ORDER_MARKER = "%product order%"


class PurgeMode(str, Enum):
    cancelled = "cancelled"
    completed = "completed"
    no_show = "no_show"
    all = "all"
    all_any_status = "all_any_status"


# older clients send "past" for completed appointments
PURGE_MODE_ALIASES = {"past": PurgeMode.completed}


def parse_purge_mode(mode: Optional[str]) -> PurgeMode:
    value = str(mode or "").strip().lower()
    if value in PURGE_MODE_ALIASES:
        return PURGE_MODE_ALIASES[value]
    try:
        return PurgeMode(value)
    except ValueError:
        valid = ", ".join(m.value for m in PurgeMode)
        raise ValidationError(f"Invalid mode. Use: {valid}")


def _purge_status_clause(mode: PurgeMode):
    if mode == PurgeMode.cancelled:
        return cancelled_clause()
    if mode == PurgeMode.completed:
        return Appointment.status == AppointmentStatus.completed.value
    if mode == PurgeMode.no_show:
        return Appointment.status == AppointmentStatus.no_show.value
    if mode == PurgeMode.all:
        return or_(
            Appointment.status == AppointmentStatus.completed.value,
            Appointment.status == AppointmentStatus.no_show.value,
            cancelled_clause(),
        )
    return None


def hide_client_history(session: Session, client_id: int, user: dict, keep_active: bool = True) -> int:
    """Hide finished and past appointments from the client's history.

    With ``keep_active`` only history is hidden: completed and cancelled
    rows, orphaned product-order rows, and anything already in the past that
    never reached a terminal status. Without it every row is hidden.
    """
    if not (is_admin(user) or user["id"] == client_id):
        raise AuthorizationError("Not authorized to clear this history")

    stmt = update(Appointment).where(Appointment.client_id == client_id)
    if keep_active:
        now = storage_now()
        terminal = or_(
            Appointment.status == AppointmentStatus.completed.value,
            Appointment.status == AppointmentStatus.no_show.value,
            cancelled_clause(),
        )
        orphan_product_order = and_(
            or_(
                col(Appointment.service_id).is_(None),
                col(Appointment.barber_id).is_(None),
                col(Appointment.shop_id).is_(None),
            ),
            col(Appointment.notes).ilike(PRODUCT_ORDER_MARKER),
        )
        stmt = stmt.where(
            or_(
                Appointment.status == AppointmentStatus.completed.value,
                cancelled_clause(),
                orphan_product_order,
                and_(Appointment.date < now, ~terminal),
            )
        )

    with transaction(session):
        result = session.exec(
            stmt.values(hidden_for_client=True, updated_at=storage_now()).execution_options(synchronize_session=False)
        )

    logger.info(f"Hid {result.rowcount} appointment(s) from client {client_id}'s history")
    return result.rowcount


def _delete_dependents(session: Session, appointment_ids: List[int]):
    session.exec(delete(AppointmentNote).where(col(AppointmentNote.appointment_id).in_(appointment_ids)))
    session.exec(
        delete(AppointmentStatusHistory).where(col(AppointmentStatusHistory.appointment_id).in_(appointment_ids))
    )

    conversation_ids = session.exec(
        select(Conversation.id).where(col(Conversation.appointment_id).in_(appointment_ids))
    ).all()
    if conversation_ids:
        session.exec(delete(Message).where(col(Message.conversation_id).in_(conversation_ids)))
        session.exec(delete(Conversation).where(col(Conversation.id).in_(conversation_ids)))

    # proposals only reference the appointment through their payload
    session.exec(
        delete(Notification)
        .where(Notification.type == NotificationType.reschedule_proposal.value)
        .where(Notification.payload["appointmentId"].as_integer().in_(appointment_ids))
        .execution_options(synchronize_session=False)
    )


def purge_barber_history(
    session: Session,
    clock: TimeNormalizer,
    barber_id: int,
    mode: Optional[str],
    user: dict,
) -> int:
    """Permanently delete a barber's appointments from before today's civil day."""
    if not can_delete_barber_history(session, user, barber_id):
        raise AuthorizationError("Not authorized to delete this barber's history")
    purge_mode = parse_purge_mode(mode)

    stmt = (
        select(Appointment.id)
        .where(Appointment.barber_id == barber_id)
        .where(Appointment.date < clock.start_of_today())
    )
    status_clause = _purge_status_clause(purge_mode)
    if status_clause is not None:
        stmt = stmt.where(status_clause)

    with transaction(session):
        appointment_ids = list(session.exec(stmt).all())
        if appointment_ids:
            _delete_dependents(session, appointment_ids)
            session.exec(delete(Appointment).where(col(Appointment.id).in_(appointment_ids)))

    logger.info(
        f"Purged {len(appointment_ids)} appointment(s) of barber {barber_id} (mode={purge_mode.value}) "
        f"by user {user['id']}"
    )
    return len(appointment_ids)


def delete_appointment(session: Session, appointment_id: int, user: dict) -> int:
    # role before lookup, so unknown ids and foreign ids answer alike
    require_role(user, Role.admin, Role.owner)
    with transaction(session):
        appt = session.get(Appointment, appointment_id)
        if appt is None:
            raise NotFoundError("Appointment not found")
        if not can_delete_single_appointment(session, user, appt):
            raise AuthorizationError("Not authorized to delete appointments")

        _delete_dependents(session, [appointment_id])
        result = session.exec(
            delete(Appointment)
            .where(Appointment.id == appointment_id)
            .execution_options(synchronize_session=False)
        )

    logger.info(f"Appointment {appointment_id} permanently deleted by user {user['id']}")
    return result.rowcount


def purge_deleted_notifications(session: Session, now: Optional[datetime] = None) -> int:
    cutoff = (now or storage_now()) - timedelta(days=RETENTION_DAYS)
    with transaction(session):
        result = session.exec(
            delete(Notification)
            .where(Notification.client_deleted == True)  # noqa: E712
            .where(col(Notification.deleted_at).is_not(None))
            .where(Notification.deleted_at < cutoff)
            .execution_options(synchronize_session=False)
        )
    return result.rowcount


def purge_chat_messages(session: Session, now: Optional[datetime] = None) -> int:
    cutoff = (now or storage_now()) - timedelta(days=RETENTION_DAYS)
    with transaction(session):
        result = session.exec(
            delete(Message).where(Message.created_at < cutoff).execution_options(synchronize_session=False)
        )
        session.exec(delete(Conversation).where(col(Conversation.id).not_in(select(Message.conversation_id))))
    return result.rowcount


def run_retention_sweeps():
    """One pass of both sweeps, each in its own short transaction."""
    with Session(engine) as session:
        try:
            notifications = purge_deleted_notifications(session)
            logger.info(f"Retention sweep: removed {notifications} deleted notification(s)")
        except Exception:
            logger.exception("Notification retention sweep failed")

        try:
            messages = purge_chat_messages(session)
            logger.info(f"Retention sweep: removed {messages} chat message(s)")
        except Exception:
            logger.exception("Chat retention sweep failed")
