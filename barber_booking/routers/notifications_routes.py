# barber_booking/routers/notifications_routes.py

from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from barber_booking.auth import get_current_user
from barber_booking.db import get_session
from barber_booking.deps import get_time_normalizer, is_admin
from barber_booking.errors import AuthorizationError
from barber_booking.schemas import ClearResult, NotificationPublic, ProposalResolved, ProposalResponse
from barber_booking.services import notifications, reschedule
from barber_booking.timenorm import TimeNormalizer

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
)


def _require_self_or_admin(current_user: dict, user_id: int):
    if not (is_admin(current_user) or current_user["id"] == user_id):
        raise AuthorizationError("Forbidden")


@router.get("/user/{user_id}", response_model=List[NotificationPublic])
def list_notifications(
    user_id: int,
    include_deleted: bool = False,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    _require_self_or_admin(current_user, user_id)
    return notifications.list_for_user(session, user_id, include_deleted=include_deleted)


@router.post("/user/{user_id}/clear-history", response_model=ClearResult)
def clear_notification_history(
    user_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    _require_self_or_admin(current_user, user_id)
    affected = notifications.clear_history_for_user(session, user_id)
    return {"success": True, "affected": affected}


@router.post("/{notification_id}/respond", response_model=ProposalResolved)
def respond_to_notification(
    notification_id: int,
    body: ProposalResponse,
    session: Session = Depends(get_session),
    clock: TimeNormalizer = Depends(get_time_normalizer),
    current_user: dict = Depends(get_current_user),
):
    notification, appointment = reschedule.respond(session, clock, notification_id, body.accepted, current_user)
    return {"notification": notification, "appointment": appointment}
