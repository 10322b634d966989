# barber_booking/services/lifecycle.py

"""Appointment lifecycle.

States: confirmed, cancelled, completed, no_show, day_off, leave_early.

    (none)      -> confirmed     booking, after the availability checks
    (none)      -> day_off       barber/owner blocking entry
    (none)      -> leave_early   barber/owner blocking entry, latest per day wins
    confirmed   -> cancelled     only while the start is still in the future
    day_off     -> cancelled     always
    leave_early -> cancelled     always
    confirmed   -> completed     stamps actual_end_time once
    confirmed   -> no_show

cancelled, completed and no_show are terminal. Every transition appends an
AppointmentStatusHistory row in the same transaction.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from ..db import transaction
from ..deps import (
    authorize_appointment_action,
    barber_works_in_shop,
    can_act_on_appointment,
    can_manage_barber,
    is_admin,
    shop_is_owned_by,
)
from ..errors import AuthorizationError, ConflictError, ConflictReason, NotFoundError, ValidationError
from ..models import (
    Appointment,
    AppointmentNote,
    AppointmentStatus,
    AppointmentStatusHistory,
    BLOCKING_STATUSES,
    Role,
    Service,
    TERMINAL_STATUSES,
    parse_status,
)
from ..schemas import AppointmentCreate, DayOffCreate, LeaveEarlyCreate, NotesUpdate, PaymentUpdate
from ..timenorm import TimeNormalizer, storage_now, to_storage
from .availability import check_bookable, find_same_day_duplicate

logger = logging.getLogger(__name__)

BOOKABLE_STATUSES = {AppointmentStatus.confirmed, AppointmentStatus.completed, AppointmentStatus.no_show}
PAYMENT_METHODS = {"cash", "card", "transfer"}
PAYMENT_STATUSES = {"paid", "unpaid", "pending"}


def _record_transition(session: Session, appt: Appointment, to_status: AppointmentStatus, changed_by: Optional[int]):
    session.add(
        AppointmentStatusHistory(
            appointment_id=appt.id,
            from_status=appt.status,
            to_status=to_status.value,
            changed_by=changed_by,
        )
    )
    appt.status = to_status.value
    appt.updated_at = storage_now()
    session.add(appt)


def _insert(session: Session, appt: Appointment, changed_by: Optional[int], conflict_message: str = None) -> Appointment:
    session.add(appt)
    try:
        session.flush()
    except IntegrityError:
        # Lost a race against a concurrent booking for the same barber and instant
        logger.warning(f"Unique slot violation for barber {appt.barber_id} at {appt.date}")
        raise ConflictError(ConflictReason.slot_taken, conflict_message)

    session.add(
        AppointmentStatusHistory(
            appointment_id=appt.id,
            from_status=None,
            to_status=appt.status,
            changed_by=changed_by,
        )
    )
    return appt


def get_or_404(session: Session, appointment_id: int) -> Appointment:
    appt = session.get(Appointment, appointment_id)
    if appt is None:
        raise NotFoundError("Appointment not found")
    return appt


def get_appointment(session: Session, key: str, user: dict) -> Appointment:
    """Look up by numeric id or by external UUID."""
    key = str(key).strip()
    if key.isdigit():
        appt = session.get(Appointment, int(key))
    else:
        appt = session.exec(select(Appointment).where(Appointment.uuid == key)).first()
    if appt is None:
        raise NotFoundError("Appointment not found")

    is_own_client = user["role"] == Role.client.value and appt.client_id == user["id"]
    if not (is_own_client or can_act_on_appointment(session, user, appt)):
        raise AuthorizationError("Not authorized to view this appointment")
    return appt


def list_for_client(session: Session, client_id: int, user: dict, include_hidden: bool = False) -> List[Appointment]:
    if not (is_admin(user) or user["id"] == client_id):
        raise AuthorizationError("Not authorized to view these appointments")
    stmt = select(Appointment).where(Appointment.client_id == client_id)
    if not include_hidden:
        stmt = stmt.where(Appointment.hidden_for_client == False)  # noqa: E712
    return list(session.exec(stmt.order_by(col(Appointment.date).desc())).all())


def list_for_barber(session: Session, barber_id: int, user: dict) -> List[Appointment]:
    if not can_manage_barber(session, user, barber_id):
        raise AuthorizationError("Not authorized to view these appointments")
    stmt = select(Appointment).where(Appointment.barber_id == barber_id)
    return list(session.exec(stmt.order_by(col(Appointment.date).desc())).all())


def list_for_shop(session: Session, shop_id: int, user: dict) -> List[Appointment]:
    allowed = (
        is_admin(user)
        or shop_is_owned_by(session, shop_id, user["id"])
        or (user["role"] == Role.barber.value and user.get("shop_id") == shop_id)
    )
    if not allowed:
        raise AuthorizationError("Not authorized to view these appointments")
    stmt = select(Appointment).where(Appointment.shop_id == shop_id)
    return list(session.exec(stmt.order_by(col(Appointment.date).desc())).all())


def _authorize_booking(session: Session, user: dict, data: AppointmentCreate):
    role = user["role"]
    if role == Role.admin.value:
        return
    if role == Role.client.value and data.client_id == user["id"]:
        return
    if role == Role.barber.value and data.barber_id == user["id"]:
        return
    if (
        role == Role.owner.value
        and shop_is_owned_by(session, data.shop_id, user["id"])
        and barber_works_in_shop(session, data.barber_id, data.shop_id)
    ):
        return
    raise AuthorizationError("Not authorized to create this appointment")


def book(session: Session, clock: TimeNormalizer, data: AppointmentCreate, user: dict) -> Appointment:
    start = clock.normalize(data.starts_at)
    if (
        data.starts_at in (None, "")
        or not data.client_id
        or not data.barber_id
        or not data.shop_id
        or not data.service_id
    ):
        raise ValidationError("Incomplete data to create the appointment")
    if start is None:
        raise ValidationError("Invalid appointment date")

    status = parse_status(data.status or AppointmentStatus.confirmed.value)
    if status not in BOOKABLE_STATUSES:
        raise ValidationError(f"Invalid status for a new appointment: {data.status!r}")

    _authorize_booking(session, user, data)

    if session.get(Service, data.service_id) is None:
        raise ValidationError("Service not found")

    with transaction(session):
        # 1) Same client, same service, same civil day
        if status == AppointmentStatus.confirmed:
            duplicate = find_same_day_duplicate(session, clock, data.client_id, data.service_id, start)
            if duplicate is not None:
                logger.warning(
                    f"Client {data.client_id} already has service {data.service_id} on {clock.civil_day(start)}"
                )
                raise ConflictError(ConflictReason.duplicate_service)

        # 2) Slot, day markers and breaks
        conflict = check_bookable(session, clock, data.barber_id, data.shop_id, data.service_id, start)
        if conflict is not None:
            logger.warning(f"Booking rejected for barber {data.barber_id} at {start.isoformat()}: {conflict.value}")
            raise ConflictError(conflict)

        # 3) Insert
        appt = _insert(
            session,
            Appointment(
                date=to_storage(start),
                status=status.value,
                notes=data.notes,
                client_id=data.client_id,
                barber_id=data.barber_id,
                shop_id=data.shop_id,
                service_id=data.service_id,
            ),
            changed_by=user["id"],
        )

    logger.info(f"Booked appointment {appt.id} for barber {appt.barber_id} at {start.isoformat()}")
    session.refresh(appt)
    return appt


def _blocking_start(clock: TimeNormalizer, raw, barber_id, shop_id, what: str) -> datetime:
    if raw in (None, "") or not barber_id or not shop_id:
        raise ValidationError(f"Missing data to mark {what} (date, barberId, shopId)")
    start = clock.normalize(raw)
    if start is None:
        raise ValidationError(f"Invalid date for {what}")
    return start


def mark_day_off(session: Session, clock: TimeNormalizer, data: DayOffCreate, user: dict) -> Appointment:
    start = _blocking_start(clock, data.starts_at, data.barber_id, data.shop_id, "the day off")
    if not can_manage_barber(session, user, data.barber_id, data.shop_id):
        raise AuthorizationError("Not authorized to mark a day off for this barber")

    with transaction(session):
        appt = _insert(
            session,
            Appointment(
                date=to_storage(start),
                status=AppointmentStatus.day_off.value,
                notes=data.notes,
                client_id=None,
                barber_id=data.barber_id,
                shop_id=data.shop_id,
                service_id=None,
            ),
            changed_by=user["id"],
            conflict_message="The barber already has an entry at that time.",
        )

    logger.info(f"Barber {appt.barber_id} marked day off on {clock.civil_day(start)}")
    session.refresh(appt)
    return appt


def mark_leave_early(session: Session, clock: TimeNormalizer, data: LeaveEarlyCreate, user: dict) -> Appointment:
    start = _blocking_start(clock, data.starts_at, data.barber_id, data.shop_id, "leave early")
    if not can_manage_barber(session, user, data.barber_id, data.shop_id):
        raise AuthorizationError("Not authorized to mark leave early for this barber")

    day_start, day_end = clock.civil_day_bounds(start)
    with transaction(session):
        # Latest wins: earlier markers for the same civil day are cancelled
        previous = session.exec(
            select(Appointment)
            .where(Appointment.barber_id == data.barber_id)
            .where(Appointment.shop_id == data.shop_id)
            .where(Appointment.status == AppointmentStatus.leave_early.value)
            .where(Appointment.date >= day_start)
            .where(Appointment.date < day_end)
        ).all()
        for old in previous:
            _record_transition(session, old, AppointmentStatus.cancelled, user["id"])
        session.flush()

        appt = _insert(
            session,
            Appointment(
                date=to_storage(start),
                status=AppointmentStatus.leave_early.value,
                notes=data.notes,
                client_id=None,
                barber_id=data.barber_id,
                shop_id=data.shop_id,
                service_id=None,
            ),
            changed_by=user["id"],
            conflict_message="The barber already has an entry at that time.",
        )

    logger.info(
        f"Barber {appt.barber_id} leaves early at {start.isoformat()} (replaced {len(previous)} earlier marker(s))"
    )
    session.refresh(appt)
    return appt


def cancel(session: Session, appointment_id: int, user: dict) -> Appointment:
    with transaction(session):
        appt = get_or_404(session, appointment_id)

        is_own_client = user["role"] == Role.client.value and appt.client_id == user["id"]
        if not is_own_client:
            authorize_appointment_action(session, user, appt, "cancel")

        status = parse_status(appt.status)
        if status is None or status in TERMINAL_STATUSES:
            raise ValidationError("This appointment cannot be cancelled in its current status.")
        if status not in BLOCKING_STATUSES and appt.date < storage_now():
            raise ValidationError("A past appointment cannot be cancelled.")

        _record_transition(session, appt, AppointmentStatus.cancelled, user["id"])

    logger.info(f"Appointment {appointment_id} cancelled by user {user['id']}")
    session.refresh(appt)
    return appt


def complete(session: Session, appointment_id: int, user: dict) -> Appointment:
    with transaction(session):
        appt = get_or_404(session, appointment_id)
        authorize_appointment_action(session, user, appt, "complete")

        status = parse_status(appt.status)
        if status not in (AppointmentStatus.confirmed, AppointmentStatus.completed):
            raise ValidationError(f"Cannot complete an appointment with status '{appt.status}'.")

        if appt.actual_end_time is None:
            appt.actual_end_time = storage_now()
        if status == AppointmentStatus.confirmed:
            _record_transition(session, appt, AppointmentStatus.completed, user["id"])
        else:
            session.add(appt)

    logger.info(f"Appointment {appointment_id} completed")
    session.refresh(appt)
    return appt


def mark_no_show(session: Session, appointment_id: int, user: dict) -> Appointment:
    with transaction(session):
        appt = get_or_404(session, appointment_id)
        authorize_appointment_action(session, user, appt, "mark as no-show")

        status = parse_status(appt.status)
        if status == AppointmentStatus.confirmed:
            _record_transition(session, appt, AppointmentStatus.no_show, user["id"])
        elif status != AppointmentStatus.no_show:
            raise ValidationError(f"Cannot mark an appointment with status '{appt.status}' as no-show.")

    logger.info(f"Appointment {appointment_id} marked as no-show")
    session.refresh(appt)
    return appt


def update_notes(session: Session, appointment_id: int, data: NotesUpdate, user: dict) -> Appointment:
    with transaction(session):
        appt = get_or_404(session, appointment_id)
        authorize_appointment_action(session, user, appt, "update notes for")

        appt.notes_barber = data.notes
        appt.updated_at = storage_now()
        session.add(appt)
        session.add(AppointmentNote(appointment_id=appt.id, author_id=user["id"], text=data.notes))

    session.refresh(appt)
    return appt


def update_payment(session: Session, appointment_id: int, data: PaymentUpdate, user: dict) -> Appointment:
    method = (data.payment_method or "").strip().lower()
    payment_status = (data.payment_status or "").strip().lower()
    if payment_status and payment_status not in PAYMENT_STATUSES:
        raise ValidationError("Invalid paymentStatus. Use: paid | unpaid | pending")
    if method and method not in PAYMENT_METHODS:
        raise ValidationError("Invalid paymentMethod. Use: cash | card | transfer")

    with transaction(session):
        appt = get_or_404(session, appointment_id)
        authorize_appointment_action(session, user, appt, "update payment for")

        appt.payment_method = method or None
        appt.payment_status = payment_status or None
        appt.payment_marked_at = storage_now()
        appt.payment_marked_by = user["id"]
        appt.updated_at = storage_now()
        session.add(appt)

    session.refresh(appt)
    return appt

