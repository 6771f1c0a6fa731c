"""사용자 레포지토리 — 명부, 목표, 리포트 수신자 조회.

User Repository — Roster, per-user targets, and report recipients.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import Row, Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from timekeeper.models.organization import Branch
from timekeeper.models.user import REPORT_RECIPIENT_ROLES, User
from timekeeper.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """사용자 레포지토리.

    Extends:
        BaseRepository[User]
    """

    def __init__(self) -> None:
        super().__init__(User)

    async def list_active_users(
        self,
        db: AsyncSession,
        organization_id: UUID,
    ) -> Sequence[Row]:
        """조직의 활성 사용자 명부를 조회합니다.

        Retrieve the active roster of an organization with branch names.

        Returns:
            Sequence[Row]: (User, branch_name) 행 목록, 이름순 (Rows ordered by name)
        """
        query: Select = (
            select(User, Branch.name)
            .outerjoin(Branch, Branch.id == User.branch_id)
            .where(User.organization_id == organization_id)
            .where(User.is_active.is_(True))
            .order_by(User.full_name)
        )
        result = await db.execute(query)
        return result.all()

    async def get_user_target(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> float | None:
        """사용자 일일 목표 시간 — None when the user has no target set."""
        result = await db.execute(select(User.target_hours_worked).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def list_report_recipients(
        self,
        db: AsyncSession,
        organization_id: UUID,
    ) -> list[str]:
        """리포트 수신자 이메일 목록.

        Emails of active owner/admin/hr users, de-duplicated (case-insensitive),
        in first-seen order. Users without an email are skipped.
        """
        query: Select = (
            select(User.email)
            .where(User.organization_id == organization_id)
            .where(User.is_active.is_(True))
            .where(User.role.in_(REPORT_RECIPIENT_ROLES))
            .where(User.email.is_not(None))
            .order_by(User.created_at)
        )
        result = await db.execute(query)

        seen: set[str] = set()
        recipients: list[str] = []
        for email in result.scalars().all():
            cleaned = email.strip()
            if not cleaned or cleaned.lower() in seen:
                continue
            seen.add(cleaned.lower())
            recipients.append(cleaned)
        return recipients


# 싱글턴 인스턴스: Singleton instance
user_repository: UserRepository = UserRepository()
