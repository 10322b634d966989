# barber_booking/routers/users_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from barber_booking.auth import get_current_user, hash_password
from barber_booking.db import get_session
from barber_booking.models import BarberShop, Role, User
from barber_booking.schemas import UserCreate, UserPublic

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["users"],
)


@router.get("/me", response_model=UserPublic)
def me(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return session.get(User, current_user["id"])


@router.post("/users", status_code=201, response_model=UserPublic)
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
):
    # Admins are provisioned out of band
    if user.role == Role.admin:
        raise HTTPException(status_code=403, detail="Admins cannot self-register")

    email = user.email.strip().lower()
    existing = session.exec(select(User).where(User.email == email)).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    if user.shop_id is not None and session.get(BarberShop, user.shop_id) is None:
        raise HTTPException(status_code=404, detail="Shop not found")

    db_user = User(
        email=email,
        name=user.name,
        password_hash=hash_password(user.password),
        role=user.role.value,
        shop_id=user.shop_id if user.role == Role.barber else None,
    )
    session.add(db_user)
    session.commit()
    session.refresh(db_user)

    logger.info(f"Registered {db_user.role} {db_user.id}")
    return db_user
