"""근태 레포지토리 — 교대 기록 관련 DB 쿼리 담당.

Attendance Repository — Attendance store queries (CRUD only, no business rules).
"""

from datetime import date, datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import Row, Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from timekeeper.models.attendance import STATUS_COMPLETED, AttendanceRecord
from timekeeper.models.user import User
from timekeeper.repositories.base import BaseRepository


class AttendanceRepository(BaseRepository[AttendanceRecord]):
    """교대 기록 레포지토리.

    Extends:
        BaseRepository[AttendanceRecord]
    """

    def __init__(self) -> None:
        super().__init__(AttendanceRecord)

    async def find_open_shift(
        self,
        db: AsyncSession,
        user_id: UUID,
        work_date: date | None = None,
    ) -> AttendanceRecord | None:
        """미완료 교대를 조회합니다.

        Retrieve the user's latest non-completed shift. When ``work_date`` is
        given only that calendar day is considered.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            user_id: 사용자 UUID (User UUID)
            work_date: 근무일 필터, 선택 (Optional local calendar day)

        Returns:
            AttendanceRecord | None: 진행 중 교대 또는 None (Open shift or None)
        """
        query: Select = (
            select(AttendanceRecord)
            .where(AttendanceRecord.user_id == user_id)
            .where(AttendanceRecord.status != STATUS_COMPLETED)
        )
        if work_date is not None:
            query = query.where(AttendanceRecord.work_date == work_date)
        query = query.order_by(AttendanceRecord.check_in_at.desc()).limit(1)

        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def find_latest_for_day(
        self,
        db: AsyncSession,
        user_id: UUID,
        work_date: date,
    ) -> AttendanceRecord | None:
        """특정 날짜의 가장 최근 교대 — Latest shift of a user on a day, any status."""
        query: Select = (
            select(AttendanceRecord)
            .where(AttendanceRecord.user_id == user_id)
            .where(AttendanceRecord.work_date == work_date)
            .order_by(AttendanceRecord.check_in_at.desc())
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def find_shifts_by_day(
        self,
        db: AsyncSession,
        organization_id: UUID,
        work_date: date,
    ) -> Sequence[AttendanceRecord]:
        """조직의 하루 교대 목록 — All shifts of an organization on a local calendar day."""
        query: Select = (
            select(AttendanceRecord)
            .where(AttendanceRecord.organization_id == organization_id)
            .where(AttendanceRecord.work_date == work_date)
            .order_by(AttendanceRecord.check_in_at)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def find_open_shifts_started_between(
        self,
        db: AsyncSession,
        organization_id: UUID,
        start: datetime,
        before: datetime,
    ) -> Sequence[Row]:
        """초과근무 후보 교대 조회.

        Open shifts (no check-out) with ``start <= check_in_at < before``, joined
        with the owner's name and email.

        Returns:
            Sequence[Row]: (AttendanceRecord, full_name, email) 행 목록
        """
        query: Select = (
            select(AttendanceRecord, User.full_name, User.email)
            .join(User, User.id == AttendanceRecord.user_id)
            .where(AttendanceRecord.organization_id == organization_id)
            .where(AttendanceRecord.check_out_at.is_(None))
            .where(AttendanceRecord.check_in_at >= start)
            .where(AttendanceRecord.check_in_at < before)
            .order_by(AttendanceRecord.check_in_at)
        )
        result = await db.execute(query)
        return result.all()


# 싱글턴 인스턴스: Singleton instance
attendance_repository: AttendanceRepository = AttendanceRepository()
