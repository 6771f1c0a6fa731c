"""조직 근무 시간 서비스 — 근무일/근무 시간 해석 및 지각 판정.

Organization Hours Service — Working-hours provider.
Resolves the working-day configuration of an organization for a date and
answers lateness/early-departure/overtime questions against it.

Resolution order for a date:
    1. 특별일 (special date override)
    2. 요일별 근무 시간 (weekly schedule row)
    3. 조직 영업 시간, 월~금 (organization open/close times, Mon-Fri)
    4. 기본값 09:00-17:00, 월~금 (defaults, Mon-Fri)
"""

import logging
import time
from datetime import date, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from timekeeper.config import settings
from timekeeper.models.organization import Organization
from timekeeper.repositories.organization_repository import organization_repository
from timekeeper.schemas.report import LatenessInfo, WorkingDayInfo
from timekeeper.utils.clock import local_day
from timekeeper.utils.time_window import minutes_of_day, time_to_minutes

logger = logging.getLogger(__name__)

DEFAULT_START_TIME = "09:00"
DEFAULT_END_TIME = "17:00"
WEEKDAYS = range(0, 5)


def assess_lateness(check_in_at: datetime, start_time: str | None, grace_minutes: int = 0) -> LatenessInfo:
    """출근 시각 지각 판정.

    ``late_minutes`` is measured from the start time (not from the end of the
    grace period) and is 0 unless the check-in is late. No start time means on time.
    """
    if not start_time:
        return LatenessInfo(is_late=False, late_minutes=0)
    delta = minutes_of_day(check_in_at) - time_to_minutes(start_time)
    is_late = delta > grace_minutes
    return LatenessInfo(is_late=is_late, late_minutes=delta if is_late else 0)


def lateness_start_time(info: WorkingDayInfo) -> str | None:
    """지각 판정 기준 시각 — None on a non-working day, where nobody is late."""
    return info.start_time if info.is_working_day else None


def _span(start_time: str, end_time: str) -> int:
    return max(0, time_to_minutes(end_time) - time_to_minutes(start_time))


class OrganizationHoursService:
    """조직 근무 시간 서비스.

    Resolved values are cached per (organization, date) for
    ``HOURS_CACHE_TTL_MINUTES``.
    """

    def __init__(self, ttl_seconds: float | None = None) -> None:
        self._ttl: float = ttl_seconds if ttl_seconds is not None else settings.HOURS_CACHE_TTL_MINUTES * 60
        self._cache: dict[tuple[UUID, date], tuple[float, WorkingDayInfo]] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    async def get_working_day_info(
        self,
        db: AsyncSession,
        organization_id: UUID,
        day: date,
    ) -> WorkingDayInfo:
        """날짜의 근무 설정을 조회합니다.

        Resolve ``{is_working_day, start_time, end_time, expected_work_minutes}``
        for one date. Non-working days keep nominal times with 0 expected minutes.
        """
        key = (organization_id, day)
        cached = self._cache.get(key)
        if cached is not None and cached[0] > time.monotonic():
            return cached[1]

        info = await self._resolve(db, organization_id, day)
        self._cache[key] = (time.monotonic() + self._ttl, info)
        return info

    async def _resolve(self, db: AsyncSession, organization_id: UUID, day: date) -> WorkingDayInfo:
        organization: Organization | None = await organization_repository.get_by_id(db, organization_id)
        base_start = (organization.open_time if organization else None) or DEFAULT_START_TIME
        base_end = (organization.close_time if organization else None) or DEFAULT_END_TIME

        weekly = await organization_repository.get_weekly_hours(db, organization_id, day.weekday())
        if weekly is not None:
            base_start, base_end = weekly.start_time, weekly.end_time
            weekly_working = weekly.is_working_day
        else:
            weekly_working = day.weekday() in WEEKDAYS

        special = await organization_repository.get_special_date(db, organization_id, day)
        if special is not None:
            if not special.is_working_day:
                logger.debug("Special non-working date %s for org %s: %s", day, organization_id, special.reason)
                return WorkingDayInfo(is_working_day=False, start_time=base_start, end_time=base_end, expected_work_minutes=0)
            start = special.start_time or base_start
            end = special.end_time or base_end
            return WorkingDayInfo(is_working_day=True, start_time=start, end_time=end, expected_work_minutes=_span(start, end))

        if not weekly_working:
            return WorkingDayInfo(is_working_day=False, start_time=base_start, end_time=base_end, expected_work_minutes=0)

        return WorkingDayInfo(
            is_working_day=True,
            start_time=base_start,
            end_time=base_end,
            expected_work_minutes=_span(base_start, base_end),
        )

    async def grace_minutes(self, db: AsyncSession, organization_id: UUID) -> int:
        """지각 유예 시간 — Organization override, else the global setting."""
        organization = await organization_repository.get_by_id(db, organization_id)
        if organization is not None and organization.late_grace_minutes is not None:
            return organization.late_grace_minutes
        return settings.LATE_GRACE_MINUTES

    async def is_user_late(
        self,
        db: AsyncSession,
        organization_id: UUID,
        check_in_at: datetime,
    ) -> LatenessInfo:
        """출근 시각의 지각 여부 — Never late on a non-working day."""
        info = await self.get_working_day_info(db, organization_id, local_day(check_in_at))
        grace = await self.grace_minutes(db, organization_id)
        return assess_lateness(check_in_at, lateness_start_time(info), grace)

    async def is_user_early(
        self,
        db: AsyncSession,
        organization_id: UUID,
        check_out_at: datetime,
    ) -> tuple[bool, int]:
        """조기 퇴근 여부 — (is_early, minutes before the end time)."""
        info = await self.get_working_day_info(db, organization_id, local_day(check_out_at))
        if not info.is_working_day:
            return False, 0
        early = time_to_minutes(info.end_time) - minutes_of_day(check_out_at)
        return (True, early) if early > 0 else (False, 0)

    async def calculate_overtime(
        self,
        db: AsyncSession,
        organization_id: UUID,
        day: date,
        worked_minutes: int,
    ) -> int:
        """기준 근무 시간 초과분(분) — Minutes beyond the day's expected work minutes."""
        info = await self.get_working_day_info(db, organization_id, day)
        return max(0, worked_minutes - info.expected_work_minutes)


# 싱글턴 인스턴스: Singleton instance
organization_hours_service: OrganizationHoursService = OrganizationHoursService()
