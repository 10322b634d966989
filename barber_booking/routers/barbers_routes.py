# barber_booking/routers/barbers_routes.py

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import delete
from sqlmodel import Session, select

from barber_booking.auth import get_current_user
from barber_booking.core import to_minutes
from barber_booking.db import get_session, transaction
from barber_booking.deps import can_manage_barber
from barber_booking.errors import AuthorizationError, ValidationError
from barber_booking.models import BarberBreak
from barber_booking.schemas import BarberBreaks, BreaksUpdate
from barber_booking.timenorm import WEEKDAY_CODES

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/barbers",
    tags=["barbers"],
)


@router.get("/{barber_id}/breaks", response_model=BarberBreaks)
def get_breaks(
    barber_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    breaks = session.exec(
        select(BarberBreak)
        .where(BarberBreak.barber_id == barber_id)
        .order_by(BarberBreak.id)
    ).all()
    return {"barber_id": barber_id, "breaks": breaks}


@router.put("/{barber_id}/breaks", response_model=BarberBreaks)
def replace_breaks(
    barber_id: int,
    body: BreaksUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    if not can_manage_barber(session, current_user, barber_id):
        raise AuthorizationError("Not authorized to change this barber's breaks")

    for item in body.breaks:
        if item.day not in WEEKDAY_CODES:
            raise ValidationError(f"day must be one of {', '.join(WEEKDAY_CODES)}")
        if to_minutes(item.start_time) is None or to_minutes(item.end_time) is None:
            raise ValidationError("startTime and endTime must be HH:MM")

    # The weekly set is replaced as a whole
    with transaction(session):
        session.exec(delete(BarberBreak).where(BarberBreak.barber_id == barber_id))
        for item in body.breaks:
            session.add(
                BarberBreak(
                    barber_id=barber_id,
                    day=item.day,
                    break_type=item.type,
                    start_time=item.start_time,
                    end_time=item.end_time,
                    enabled=item.enabled,
                )
            )

    logger.info(f"Replaced breaks for barber {barber_id} ({len(body.breaks)} item(s))")
    breaks = session.exec(
        select(BarberBreak)
        .where(BarberBreak.barber_id == barber_id)
        .order_by(BarberBreak.id)
    ).all()
    return {"barber_id": barber_id, "breaks": breaks}
