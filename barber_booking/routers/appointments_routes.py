# barber_booking/routers/appointments_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlmodel import Session

from barber_booking.auth import get_current_user
from barber_booking.db import get_session
from barber_booking.deps import get_time_normalizer
from barber_booking.schemas import (
    AppointmentCreate,
    AppointmentPublic,
    DayOffCreate,
    DeleteResult,
    LeaveEarlyCreate,
    NotesUpdate,
    PaymentUpdate,
    ProposalCreated,
    ProposeAdvance,
)
from barber_booking.services import lifecycle, reschedule, retention
from barber_booking.timenorm import TimeNormalizer


router = APIRouter(
    prefix="/appointments",
    tags=["appointments"],
)


@router.post("", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    appt: AppointmentCreate,
    session: Session = Depends(get_session),
    clock: TimeNormalizer = Depends(get_time_normalizer),
    current_user: dict = Depends(get_current_user),
):
    return lifecycle.book(session, clock, appt, current_user)


@router.post("/day-off", response_model=AppointmentPublic, status_code=201)
def create_day_off(
    block: DayOffCreate,
    session: Session = Depends(get_session),
    clock: TimeNormalizer = Depends(get_time_normalizer),
    current_user: dict = Depends(get_current_user),
):
    return lifecycle.mark_day_off(session, clock, block, current_user)


@router.post("/leave-early", response_model=AppointmentPublic, status_code=201)
def create_leave_early(
    block: LeaveEarlyCreate,
    session: Session = Depends(get_session),
    clock: TimeNormalizer = Depends(get_time_normalizer),
    current_user: dict = Depends(get_current_user),
):
    return lifecycle.mark_leave_early(session, clock, block, current_user)


@router.get("/client/{client_id}", response_model=List[AppointmentPublic])
def list_client_appointments(
    client_id: int,
    include_hidden: bool = False,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return lifecycle.list_for_client(session, client_id, current_user, include_hidden=include_hidden)


@router.get("/barber/{barber_id}", response_model=List[AppointmentPublic])
def list_barber_appointments(
    barber_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return lifecycle.list_for_barber(session, barber_id, current_user)


@router.get("/shop/{shop_id}", response_model=List[AppointmentPublic])
def list_shop_appointments(
    shop_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return lifecycle.list_for_shop(session, shop_id, current_user)


@router.get("/{appt_key}", response_model=AppointmentPublic)
def get_appointment(
    appt_key: str,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return lifecycle.get_appointment(session, appt_key, current_user)


@router.put("/{appt_id}/cancel", response_model=AppointmentPublic)
def cancel_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return lifecycle.cancel(session, appt_id, current_user)


@router.put("/{appt_id}/complete", response_model=AppointmentPublic)
def complete_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return lifecycle.complete(session, appt_id, current_user)


@router.put("/{appt_id}/no-show", response_model=AppointmentPublic)
def mark_no_show(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return lifecycle.mark_no_show(session, appt_id, current_user)


@router.put("/{appt_id}/notes", response_model=AppointmentPublic)
def update_barber_notes(
    appt_id: int,
    body: NotesUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return lifecycle.update_notes(session, appt_id, body, current_user)


@router.put("/{appt_id}/payment", response_model=AppointmentPublic)
def update_payment(
    appt_id: int,
    body: PaymentUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return lifecycle.update_payment(session, appt_id, body, current_user)


@router.post("/{appt_id}/propose-advance", response_model=ProposalCreated, status_code=201)
def propose_advance(
    appt_id: int,
    body: ProposeAdvance,
    session: Session = Depends(get_session),
    clock: TimeNormalizer = Depends(get_time_normalizer),
    current_user: dict = Depends(get_current_user),
):
    notification, conversation_id = reschedule.propose(session, clock, appt_id, body.new_time, current_user)
    return {"notification": notification, "conversation_id": conversation_id}


@router.delete("/history/barber/{barber_id}", response_model=DeleteResult)
def delete_barber_history(
    barber_id: int,
    mode: Optional[str] = None,
    session: Session = Depends(get_session),
    clock: TimeNormalizer = Depends(get_time_normalizer),
    current_user: dict = Depends(get_current_user),
):
    deleted = retention.purge_barber_history(session, clock, barber_id, mode, current_user)
    return {"deleted": deleted}


@router.delete("/history/{client_id}", status_code=204)
def hide_client_history(
    client_id: int,
    keep_active: bool = Query(default=True, alias="keepActive"),
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    retention.hide_client_history(session, client_id, current_user, keep_active=keep_active)
    return Response(status_code=204)


@router.delete("/{appt_id}", response_model=DeleteResult)
def delete_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    deleted = retention.delete_appointment(session, appt_id, current_user)
    return {"deleted": deleted, "id": appt_id}
