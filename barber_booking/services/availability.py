# barber_booking/services/availability.py

"""Bookability checks for a candidate appointment.

``check_bookable`` runs the checks in a fixed order and stops at the first
conflict:

1. slot: another non-cancelled row starts at the same instant for the
   barber, or an existing client appointment's [start, start + duration)
   overlaps the candidate's;
2. day markers: a day-off marker on the candidate's civil day, or a
   leave-early marker at or before the candidate's start;
3. breaks: the candidate overlaps one of the barber's enabled weekly breaks,
   including breaks that cross midnight from the previous day.

Everything here only reads. Callers run it inside the same transaction as
the insert that follows.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlmodel import Session, col, select

from ..core import DayInterval, has_conflict, split_appointment, split_break, to_minutes
from ..errors import ConflictReason
from ..models import Appointment, AppointmentStatus, BarberBreak, Service, cancelled_clause
from ..timenorm import TimeNormalizer, to_storage

logger = logging.getLogger(__name__)

# No service lasts longer than this; bounds the overlap lookback window
MAX_SERVICE_MINUTES = 24 * 60


def get_service_duration(session: Session, service_id: Optional[int]) -> int:
    if service_id is None:
        return 0
    service = session.get(Service, service_id)
    if service is None:
        return 0
    return max(0, int(service.duration or 0))


def find_slot_collision(
    session: Session,
    barber_id: int,
    start: datetime,
    duration: int,
    exclude_id: Optional[int] = None,
) -> Optional[Appointment]:
    start = to_storage(start)
    end = start + timedelta(minutes=duration)

    stmt = (
        select(Appointment)
        .where(Appointment.barber_id == barber_id)
        .where(Appointment.date == start)
        .where(~cancelled_clause())
    )
    if exclude_id is not None:
        stmt = stmt.where(Appointment.id != exclude_id)
    exact = session.exec(stmt).first()
    if exact is not None:
        return exact

    if duration <= 0:
        return None

    stmt = (
        select(Appointment, Service.duration)
        .join(Service, Service.id == Appointment.service_id)
        .where(Appointment.barber_id == barber_id)
        .where(Appointment.status == AppointmentStatus.confirmed.value)
        .where(Appointment.date >= start - timedelta(minutes=MAX_SERVICE_MINUTES))
        .where(Appointment.date < end)
    )
    if exclude_id is not None:
        stmt = stmt.where(Appointment.id != exclude_id)

    for existing, existing_duration in session.exec(stmt).all():
        existing_end = existing.date + timedelta(minutes=existing_duration or 0)
        if existing.date < end and existing_end > start:
            return existing
    return None


def find_day_marker(
    session: Session,
    clock: TimeNormalizer,
    barber_id: int,
    shop_id: Optional[int],
    start: datetime,
    status: AppointmentStatus,
) -> Optional[Appointment]:
    """Latest marker of ``status`` on the civil day of ``start``."""
    day_start, day_end = clock.civil_day_bounds(start)
    stmt = (
        select(Appointment)
        .where(Appointment.barber_id == barber_id)
        .where(Appointment.status == status.value)
        .where(Appointment.date >= day_start)
        .where(Appointment.date < day_end)
        .order_by(col(Appointment.date).desc())
    )
    if shop_id is not None:
        stmt = stmt.where(Appointment.shop_id == shop_id)
    return session.exec(stmt).first()


def break_intervals(breaks: List[BarberBreak], day_codes: dict) -> List[DayInterval]:
    """Map weekly breaks onto day offsets relative to the candidate's day.

    ``day_codes`` maps a weekday code to its offset (-1, 0 or 1).
    """
    intervals: List[DayInterval] = []
    for b in breaks:
        start = to_minutes(b.start_time)
        end = to_minutes(b.end_time)
        if start is None or end is None:
            continue
        offset = day_codes.get(b.day)
        if offset is None:
            continue
        intervals.extend(split_break(start, end, day=offset))
    return intervals


def find_break_conflict(
    session: Session,
    clock: TimeNormalizer,
    barber_id: int,
    start: datetime,
    duration: int,
) -> bool:
    start_min = clock.minute_of_day(start)
    appt = split_appointment(start_min, duration)

    day_codes = {clock.weekday_code(start, -1): -1, clock.weekday_code(start): 0}
    if len(appt) > 1:
        day_codes[clock.weekday_code(start, 1)] = 1

    breaks = session.exec(
        select(BarberBreak)
        .where(BarberBreak.barber_id == barber_id)
        .where(BarberBreak.enabled == True)  # noqa: E712
        .where(col(BarberBreak.day).in_(list(day_codes)))
    ).all()

    return has_conflict(appt, break_intervals(breaks, day_codes))


def check_bookable(
    session: Session,
    clock: TimeNormalizer,
    barber_id: int,
    shop_id: Optional[int],
    service_id: Optional[int],
    start: datetime,
    exclude_id: Optional[int] = None,
) -> Optional[ConflictReason]:
    """Return None when the slot can be booked, otherwise the first conflict."""
    duration = get_service_duration(session, service_id)

    # 1) Slot already taken
    if find_slot_collision(session, barber_id, start, duration, exclude_id=exclude_id) is not None:
        return ConflictReason.slot_taken

    # 2) Barber is off or leaving early that day
    if find_day_marker(session, clock, barber_id, shop_id, start, AppointmentStatus.day_off) is not None:
        return ConflictReason.day_off_conflict

    leave_early = find_day_marker(session, clock, barber_id, shop_id, start, AppointmentStatus.leave_early)
    if leave_early is not None and to_storage(start) >= leave_early.date:
        return ConflictReason.leave_early_conflict

    # 3) Weekly breaks
    if find_break_conflict(session, clock, barber_id, start, duration):
        return ConflictReason.break_conflict

    return None


def find_same_day_duplicate(
    session: Session,
    clock: TimeNormalizer,
    client_id: int,
    service_id: int,
    start: datetime,
) -> Optional[Appointment]:
    """A confirmed appointment for the same client and service on the same civil day."""
    day_start, day_end = clock.civil_day_bounds(start)
    return session.exec(
        select(Appointment)
        .where(Appointment.client_id == client_id)
        .where(Appointment.service_id == service_id)
        .where(Appointment.status == AppointmentStatus.confirmed.value)
        .where(Appointment.date >= day_start)
        .where(Appointment.date < day_end)
    ).first()
