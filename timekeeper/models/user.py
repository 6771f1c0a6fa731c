"""사용자 SQLAlchemy ORM 모델 정의.

User SQLAlchemy ORM model definition.

Tables:
    - users: 조직 소속 사용자 (Users scoped to an organization)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from timekeeper.database import Base

# 리포트 수신 역할: Roles that receive organization reports
REPORT_RECIPIENT_ROLES: tuple[str, ...] = ("owner", "admin", "hr")


class User(Base):
    """사용자 모델.

    User model. ``role`` is a plain label (owner | admin | hr | manager | employee);
    access control is handled outside this service.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        organization_id: 소속 조직 FK (Organization scope)
        branch_id: 소속 지점 FK, 선택 (Optional branch)
        full_name: 이름 (Display name)
        email: 이메일, 선택 (Email for reminders and reports)
        role: 역할 라벨 (Role label)
        is_active: 활성 상태 (Active users form the roster)
        target_hours_worked: 일일 목표 근무 시간, 선택 (Daily hours target; default applies when null)
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    branch_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("branches.id", ondelete="SET NULL"), nullable=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="employee")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    target_hours_worked: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
