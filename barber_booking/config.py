# barber_booking/config.py

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./barber.db")
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn("SECRET_KEY not set! Using insecure default", RuntimeWarning, stacklevel=2)
    SECRET_KEY = "change-me-later"
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Wall-clock input without an offset is pinned to this offset
APP_TZ_OFFSET = os.getenv("APP_TZ_OFFSET", "-04:00")
# Civil days, weekday codes and time labels are computed in this zone
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "America/Santo_Domingo")

RETENTION_DAYS = int(os.getenv("RETENTION_DAYS", "31"))
RETENTION_SWEEP_HOURS = float(os.getenv("RETENTION_SWEEP_HOURS", "12"))
RETENTION_SWEEP_ENABLED = os.getenv("RETENTION_SWEEP_ENABLED", "true").lower() == "true"
