# barber_booking/auth.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlmodel import Session, select

from .config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from .db import get_session
from .models import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def authenticate(session: Session, email: str, password: str) -> Optional[User]:
    user = session.exec(select(User).where(User.email == email)).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def create_access_token(user: User, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    """Bearer token for ``user``; ``sub`` is the email, ``uid`` the numeric id."""
    claims = {
        "sub": user.email,
        "uid": user.id,
        "role": user.role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> dict:
    """Resolve the bearer token to the caller: ``{id, email, role, shop_id}``.

    Role and shop are read from the database, not from the token, so a
    changed role takes effect without a new login.
    """
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid token")

    user_id, email = claims.get("uid"), claims.get("sub")
    if user_id is None or email is None:
        raise _unauthorized("Invalid token")

    user = session.get(User, user_id)
    if user is None or user.email != email:
        logger.warning(f"Token for unknown user {user_id} ({email})")
        raise _unauthorized("User not found")

    return {
        "id": user.id,
        "email": user.email,
        "role": str(user.role or "").lower(),
        "shop_id": user.shop_id,
    }
