# barber_booking/timenorm.py

"""Time normalization for scheduling input.

Every instant that reaches the scheduling engine goes through
``TimeNormalizer.normalize`` and comes out as an aware UTC datetime (or None
when the input cannot be read). Wall-clock input without an offset is pinned
to the configured fallback offset, never to the host's local timezone.

The database stores naive UTC datetimes; ``to_storage`` / ``from_storage``
are the only conversions between the two representations.
"""

import math
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

EXPLICIT_OFFSET_RE = re.compile(r"(Z|[+-]\d{2}:\d{2})$")
DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
NAIVE_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2})?$")
OFFSET_RE = re.compile(r"^([+-])(\d{2}):(\d{2})$")

# Python weekday() order: Monday=0 .. Sunday=6
WEEKDAY_CODES = ("L", "M", "X", "J", "V", "S", "D")

RawInstant = Union[str, int, float, datetime, date, None]


def parse_offset(offset: str) -> timezone:
    """Parse '+HH:MM' / '-HH:MM' (or 'Z') into a fixed-offset timezone."""
    if offset in ("Z", "z"):
        return timezone.utc
    m = OFFSET_RE.match(offset.strip())
    if not m:
        raise ValueError(f"Invalid UTC offset: {offset!r}")
    sign, hours, minutes = m.groups()
    delta = timedelta(hours=int(hours), minutes=int(minutes))
    if delta >= timedelta(hours=24):
        raise ValueError(f"Invalid UTC offset: {offset!r}")
    return timezone(-delta if sign == "-" else delta)


def to_storage(instant: datetime) -> datetime:
    """Aware datetime -> naive UTC for the database."""
    if instant.tzinfo is None:
        return instant
    return instant.astimezone(timezone.utc).replace(tzinfo=None)


def from_storage(value: Optional[datetime]) -> Optional[datetime]:
    """Naive UTC from the database -> aware UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def storage_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimeNormalizer:
    """Turns heterogeneous date/time input into absolute UTC instants.

    ``default_offset`` applies to wall-clock input that carries no offset.
    ``zone`` is the named timezone that defines the barbershop's civil day.
    """

    def __init__(self, default_offset: str = "-04:00", zone: str = "America/Santo_Domingo"):
        self.default_offset = default_offset
        self.fallback_tz = parse_offset(default_offset)
        try:
            self.zone = ZoneInfo(zone)
        except ZoneInfoNotFoundError:
            raise ValueError(f"Unknown timezone: {zone!r}")

    def normalize(self, value: RawInstant) -> Optional[datetime]:
        if value is None or isinstance(value, bool):
            return None

        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=self.fallback_tz)
            return value.astimezone(timezone.utc)

        if isinstance(value, date):
            return datetime.combine(value, time.min, tzinfo=self.fallback_tz).astimezone(timezone.utc)

        if isinstance(value, (int, float)):
            return self._from_epoch_ms(value)

        if not isinstance(value, str):
            return None

        s = value.strip()
        if not s:
            return None

        if EXPLICIT_OFFSET_RE.search(s):
            return self._parse_iso(s)

        if DATE_ONLY_RE.match(s):
            return self._parse_iso(f"{s}T00:00:00{self.default_offset}")

        if NAIVE_DATETIME_RE.match(s):
            return self._parse_iso(f"{s}{self.default_offset}")

        return self._parse_iso(s)

    def _parse_iso(self, s: str) -> Optional[datetime]:
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(s)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=self.fallback_tz)
        return parsed.astimezone(timezone.utc)

    @staticmethod
    def _from_epoch_ms(value: Union[int, float]) -> Optional[datetime]:
        # Epoch input is in milliseconds, as sent by browser clients
        if isinstance(value, float) and not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    # civil-day helpers

    def local(self, instant: datetime) -> datetime:
        return from_storage(instant).astimezone(self.zone)

    def civil_day(self, instant: datetime) -> date:
        return self.local(instant).date()

    def civil_day_bounds(self, instant: datetime) -> Tuple[datetime, datetime]:
        """Naive-UTC [start, end) of the civil day containing ``instant``."""
        day = self.civil_day(instant)
        start = datetime.combine(day, time.min, tzinfo=self.zone)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=self.zone)
        return to_storage(start), to_storage(end)

    def start_of_today(self, now: Optional[datetime] = None) -> datetime:
        """Naive-UTC instant of local midnight today."""
        now = now or datetime.now(timezone.utc)
        return self.civil_day_bounds(now)[0]

    def minute_of_day(self, instant: datetime) -> int:
        local = self.local(instant)
        return local.hour * 60 + local.minute

    def weekday_code(self, instant: datetime, shift_days: int = 0) -> str:
        weekday = (self.local(instant).weekday() + shift_days) % 7
        return WEEKDAY_CODES[weekday]

    def time_label(self, instant: datetime) -> str:
        """Human-readable local time such as '09:30 AM'."""
        return self.local(instant).strftime("%I:%M %p")
