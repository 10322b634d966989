# barber_booking/services/reschedule.py

"""Barber-initiated reschedule proposals.

A proposal is a RESCHEDULE_PROPOSAL notification for the client with
``payload = {"appointmentId", "newTime"}``, echoed as a system message in the
client-barber conversation of the appointment. The notification is committed
first; the chat echo runs in its own transaction and its failures are only
logged, so a proposal may exist without a chat message.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..db import transaction
from ..deps import authorize_appointment_action, is_admin, require_role
from ..errors import AuthorizationError, ConflictError, ConflictReason, NotFoundError, ValidationError
from ..models import (
    Appointment,
    AppointmentStatus,
    AppointmentStatusHistory,
    Notification,
    NotificationStatus,
    NotificationType,
    Role,
    parse_status,
)
from ..timenorm import TimeNormalizer, from_storage, storage_now, to_storage
from . import chat
from .notifications import create_notification, update_notification_status

logger = logging.getLogger(__name__)

PROPOSAL_TITLE = "Appointment reschedule proposal"
RESCHEDULE_RESPONSE = "RESCHEDULE_RESPONSE"


def _echo(
    session: Session,
    appointment_id: int,
    sender_id: Optional[int],
    receiver_id: Optional[int],
    text: str,
    related_action: str,
    related_id: int,
) -> Optional[int]:
    """Post a system message in the appointment's conversation; failures are logged only."""
    try:
        with transaction(session):
            conversation_id = chat.get_or_create_conversation(session, appointment_id)
            chat.post_message(
                session,
                conversation_id,
                sender_id=sender_id,
                receiver_id=receiver_id,
                text=text,
                is_system=True,
                related_action=related_action,
                related_id=str(related_id),
            )
        return conversation_id
    except Exception:
        logger.exception(f"Could not post chat message for appointment {appointment_id}")
        return None


def propose(
    session: Session,
    clock: TimeNormalizer,
    appointment_id: int,
    raw_new_time,
    user: dict,
) -> Tuple[Notification, Optional[int]]:
    require_role(user, Role.barber, Role.owner, Role.admin)
    if raw_new_time in (None, ""):
        raise ValidationError("newTime is required")
    new_time = clock.normalize(raw_new_time)
    if new_time is None:
        raise ValidationError("Invalid newTime")

    with transaction(session):
        appt = session.get(Appointment, appointment_id)
        if appt is None:
            raise NotFoundError("Appointment not found")
        authorize_appointment_action(session, user, appt, "propose a new time for")
        if appt.client_id is None:
            raise ValidationError("Only client appointments can be rescheduled")
        if parse_status(appt.status) != AppointmentStatus.confirmed:
            raise ValidationError(f"Cannot reschedule an appointment with status '{appt.status}'")

        label = clock.time_label(new_time)
        notification = create_notification(
            session,
            user_id=appt.client_id,
            type=NotificationType.reschedule_proposal.value,
            title=PROPOSAL_TITLE,
            message=f"Your barber suggests moving your appointment to {label}",
            status=NotificationStatus.pending,
            payload={"appointmentId": appt.id, "newTime": new_time.isoformat()},
        )
        client_id, barber_id = appt.client_id, appt.barber_id

    logger.info(f"Reschedule proposal {notification.id} for appointment {appointment_id} -> {new_time.isoformat()}")

    conversation_id = _echo(
        session,
        appointment_id,
        sender_id=barber_id,
        receiver_id=client_id,
        text=f"Hi, I have asked to move your appointment to {label}. Can you confirm?",
        related_action=NotificationType.reschedule_proposal.value,
        related_id=notification.id,
    )
    session.refresh(notification)
    return notification, conversation_id


def _proposal_payload(clock: TimeNormalizer, notification: Notification):
    if notification.type != NotificationType.reschedule_proposal.value:
        raise ValidationError("This notification does not accept a reschedule response")
    payload = notification.payload or {}
    appointment_id = payload.get("appointmentId")
    new_time = clock.normalize(payload.get("newTime"))
    if not appointment_id or new_time is None:
        raise ValidationError("The notification does not carry enough data to process the proposal")
    return int(appointment_id), new_time


def respond(
    session: Session,
    clock: TimeNormalizer,
    notification_id: int,
    accepted: bool,
    user: dict,
) -> Tuple[Notification, Optional[Appointment]]:
    with transaction(session):
        notification = session.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")

        appointment_id, new_time = _proposal_payload(clock, notification)

        if not (is_admin(user) or notification.user_id == user["id"]):
            raise AuthorizationError("Not authorized to respond to this notification")
        if notification.status != NotificationStatus.pending.value:
            raise ValidationError(f"This proposal was already answered ({notification.status})")

        appt = session.get(Appointment, appointment_id)
        if appt is None:
            raise NotFoundError("Appointment not found")

        updated_appointment = None
        if accepted:
            if parse_status(appt.status) != AppointmentStatus.confirmed:
                raise ValidationError(f"Cannot reschedule an appointment with status '{appt.status}'")
            barber_id = appt.barber_id
            old_date = from_storage(appt.date)
            appt.date = to_storage(new_time)
            appt.updated_at = storage_now()
            session.add(appt)
            session.add(
                AppointmentStatusHistory(
                    appointment_id=appt.id,
                    from_status=appt.status,
                    to_status=appt.status,
                    changed_by=user["id"],
                )
            )
            try:
                session.flush()
            except IntegrityError:
                logger.warning(f"Accepting proposal {notification_id} would double-book barber {barber_id}")
                raise ConflictError(ConflictReason.slot_taken)
            updated_appointment = appt
            logger.info(f"Appointment {appt.id} moved from {old_date.isoformat()} to {new_time.isoformat()}")

        status = NotificationStatus.accepted if accepted else NotificationStatus.rejected
        notification = update_notification_status(session, notification_id, status)
        client_id, barber_id = appt.client_id, appt.barber_id

    logger.info(f"Reschedule proposal {notification_id} {status.value}")

    _echo(
        session,
        appointment_id,
        sender_id=client_id,
        receiver_id=barber_id,
        text=(
            "I have accepted the new appointment time."
            if accepted
            else "I have declined the proposed appointment time."
        ),
        related_action=RESCHEDULE_RESPONSE,
        related_id=notification_id,
    )
    session.refresh(notification)
    if updated_appointment is not None:
        session.refresh(updated_appointment)
    return notification, updated_appointment
