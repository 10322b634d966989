# barber_booking/db.py

from contextlib import contextmanager

from sqlmodel import Session, create_engine

from .config import DATABASE_URL, DB_ECHO

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False  # required for SQLite + FastAPI

# Engine = connection to the database
engine = create_engine(
    DATABASE_URL,
    echo=DB_ECHO,
    pool_pre_ping=True,
    connect_args=connect_args,
)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session


@contextmanager
def transaction(session: Session):
    """Run a block as one unit of work: commit on success, roll back on any error."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
