# barber_booking/deps.py

"""Authorization guards shared by every appointment mutation.

A caller may act on an appointment when they are an admin, the barber the
appointment belongs to, or the owner of the shop it was booked in. A failed
guard is always an authorization failure, never a not-found.
"""

import logging
from typing import Optional

from sqlmodel import Session, select

from .config import APP_TIMEZONE, APP_TZ_OFFSET
from .errors import AuthorizationError
from .models import Appointment, BarberShop, Role, User
from .timenorm import TimeNormalizer

logger = logging.getLogger(__name__)


def get_time_normalizer() -> TimeNormalizer:
    return TimeNormalizer(default_offset=APP_TZ_OFFSET, zone=APP_TIMEZONE)


def require_role(user: dict, *roles: Role):
    if user["role"] not in {r.value for r in roles}:
        raise AuthorizationError("Forbidden")


def is_admin(user: dict) -> bool:
    return user["role"] == Role.admin.value


def shop_is_owned_by(session: Session, shop_id: Optional[int], owner_id: Optional[int]) -> bool:
    if shop_id is None or owner_id is None:
        return False
    shop = session.get(BarberShop, shop_id)
    return shop is not None and shop.owner_id == owner_id


def can_act_on_appointment(session: Session, user: dict, appt: Appointment) -> bool:
    role = user["role"]
    if role == Role.admin.value:
        return True
    if role == Role.barber.value:
        return appt.barber_id is not None and appt.barber_id == user["id"]
    if role == Role.owner.value:
        return shop_is_owned_by(session, appt.shop_id, user["id"])
    return False


def authorize_appointment_action(session: Session, user: dict, appt: Appointment, action: str):
    if not can_act_on_appointment(session, user, appt):
        logger.warning(f"User {user['id']} ({user['role']}) denied '{action}' on appointment {appt.id}")
        raise AuthorizationError(f"Not authorized to {action} this appointment")


def can_manage_barber(session: Session, user: dict, barber_id: int, shop_id: Optional[int] = None) -> bool:
    """Blocking entries and breaks: barber self, owner of the shop, admin."""
    role = user["role"]
    if role == Role.admin.value:
        return True
    if role == Role.barber.value:
        return user["id"] == barber_id
    if role == Role.owner.value:
        if shop_id is None:
            barber = session.get(User, barber_id)
            shop_id = barber.shop_id if barber else None
        elif not barber_works_in_shop(session, barber_id, shop_id):
            return False
        return shop_is_owned_by(session, shop_id, user["id"])
    return False


def barber_works_in_shop(session: Session, barber_id: Optional[int], shop_id: Optional[int]) -> bool:
    if barber_id is None or shop_id is None:
        return False
    barber = session.get(User, barber_id)
    return barber is not None and barber.shop_id == shop_id


def can_delete_barber_history(session: Session, user: dict, barber_id: int) -> bool:
    role = user["role"]
    if role == Role.admin.value:
        return True

    if role == Role.owner.value:
        # the barber must work in one of the owner's shops
        owned = session.exec(
            select(User.id)
            .join(BarberShop, BarberShop.id == User.shop_id)
            .where(User.id == barber_id)
            .where(BarberShop.owner_id == user["id"])
        ).first()
        return owned is not None

    if role == Role.barber.value:
        if user["id"] != barber_id:
            return False
        barber = session.get(User, barber_id)
        return bool(barber and barber.can_delete_history)

    return False


def can_delete_single_appointment(session: Session, user: dict, appt: Appointment) -> bool:
    role = user["role"]
    if role == Role.admin.value:
        return True
    if role == Role.owner.value:
        return shop_is_owned_by(session, appt.shop_id, user["id"])
    return False
