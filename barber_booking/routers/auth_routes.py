# barber_booking/routers/auth_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session

from barber_booking.auth import authenticate, create_access_token
from barber_booking.db import get_session
from barber_booking.schemas import Token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    # OAuth2 password form: the username field carries the email
    user = authenticate(session, form_data.username, form_data.password)
    if user is None:
        logger.warning(f"Failed login for {form_data.username}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    logger.info(f"User {user.id} ({user.role}) logged in")
    return {"access_token": create_access_token(user), "token_type": "bearer"}
