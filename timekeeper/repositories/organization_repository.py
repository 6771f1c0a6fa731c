"""조직 레포지토리 — 조직 및 근무 시간 캘린더 조회.

Organization Repository — Organizations and their working-hours calendar.
"""

from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from timekeeper.models.organization import Organization, OrganizationHours, OrganizationSpecialDate
from timekeeper.repositories.base import BaseRepository


class OrganizationRepository(BaseRepository[Organization]):
    """조직 레포지토리.

    Extends:
        BaseRepository[Organization]
    """

    def __init__(self) -> None:
        super().__init__(Organization)

    async def list_active(self, db: AsyncSession) -> Sequence[Organization]:
        return await self.get_all(db, filters={"is_active": True}, order_by=Organization.name)

    async def list_with_hours(self, db: AsyncSession) -> Sequence[Organization]:
        """영업 시간이 설정된 활성 조직 — Active organizations with both open and close times."""
        query: Select = (
            select(Organization)
            .where(Organization.is_active.is_(True))
            .where(Organization.open_time.is_not(None))
            .where(Organization.close_time.is_not(None))
            .order_by(Organization.name)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def get_weekly_hours(
        self,
        db: AsyncSession,
        organization_id: UUID,
        day_of_week: int,
    ) -> OrganizationHours | None:
        query: Select = (
            select(OrganizationHours)
            .where(OrganizationHours.organization_id == organization_id)
            .where(OrganizationHours.day_of_week == day_of_week)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_special_date(
        self,
        db: AsyncSession,
        organization_id: UUID,
        day: date,
    ) -> OrganizationSpecialDate | None:
        query: Select = (
            select(OrganizationSpecialDate)
            .where(OrganizationSpecialDate.organization_id == organization_id)
            .where(OrganizationSpecialDate.date == day)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()


# 싱글턴 인스턴스: Singleton instance
organization_repository: OrganizationRepository = OrganizationRepository()
