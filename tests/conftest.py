"""pytest configuration: in-memory database, app client and seed helpers."""
from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is available on sys.path so tests can import the app package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from barber_booking import models  # noqa: F401  (registers tables)
from barber_booking.auth import create_access_token
from barber_booking.db import get_session
from barber_booking.main import app
from barber_booking.models import BarberShop, Role, Service, User
from barber_booking.timenorm import TimeNormalizer


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def _get_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def clock():
    return TimeNormalizer(default_offset="-04:00", zone="America/Santo_Domingo")


def make_user(session: Session, email: str, role: Role, shop_id=None, **extra) -> User:
    user = User(email=email, name=email.split("@")[0], password_hash="not-a-real-hash", role=role.value, shop_id=shop_id, **extra)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def as_caller(user: User) -> dict:
    """The dict get_current_user would resolve for this user."""
    return {"id": user.id, "email": user.email, "role": user.role, "shop_id": user.shop_id}


def auth_headers(user: User) -> dict:
    token = create_access_token(user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def shop_setup(session):
    """An owner with one shop, one barber, two clients, an admin and two services."""
    owner = make_user(session, "owner@example.com", Role.owner)
    shop = BarberShop(name="Fade Factory", owner_id=owner.id)
    session.add(shop)
    session.commit()
    session.refresh(shop)

    barber = make_user(session, "barber@example.com", Role.barber, shop_id=shop.id)
    client_a = make_user(session, "ana@example.com", Role.client)
    client_b = make_user(session, "bruno@example.com", Role.client)
    admin = make_user(session, "admin@example.com", Role.admin)

    haircut = Service(shop_id=shop.id, name="Haircut", duration=30, price=15.0)
    beard = Service(shop_id=shop.id, name="Beard trim", duration=60, price=10.0)
    session.add(haircut)
    session.add(beard)
    session.commit()
    session.refresh(haircut)
    session.refresh(beard)

    return {
        "owner": owner,
        "shop": shop,
        "barber": barber,
        "client_a": client_a,
        "client_b": client_b,
        "admin": admin,
        "haircut": haircut,
        "beard": beard,
    }
