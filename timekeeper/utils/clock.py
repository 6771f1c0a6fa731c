"""시간대 유틸리티.

Timezone-aware datetime helpers.
- Store and compare in UTC.
- Calendar days and HH:MM windows are evaluated in ``settings.TIMEZONE``.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from timekeeper.config import settings

UTC = timezone.utc


def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def now_utc() -> datetime:
    """현재 UTC 시각 (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """naive면 UTC로 간주, aware면 UTC로 변환.

    SQLite returns naive datetimes for ``DateTime(timezone=True)`` columns; every
    value read back from the store passes through here.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_local(dt: datetime) -> datetime:
    return ensure_utc(dt).astimezone(local_tz())


def local_day(dt: datetime) -> date:
    """설정 시간대 기준 달력 날짜 — Calendar day of ``dt`` in the configured zone."""
    return to_local(dt).date()


def local_today(now: datetime | None = None) -> date:
    return local_day(now or now_utc())


def start_of_local_day(day: date) -> datetime:
    """해당 날짜 00:00 (설정 시간대) 의 UTC 시각."""
    return datetime.combine(day, time.min, tzinfo=local_tz()).astimezone(UTC)


def at_local_minutes(day: date, minutes: int) -> datetime:
    """날짜 + 자정 이후 분 → UTC 시각 — ``day`` at ``minutes`` past local midnight, as UTC."""
    local_midnight = datetime.combine(day, time.min, tzinfo=local_tz())
    return (local_midnight + timedelta(minutes=minutes)).astimezone(UTC)
