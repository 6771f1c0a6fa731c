"""조직 관련 SQLAlchemy ORM 모델 정의.

Organization-related SQLAlchemy ORM model definitions.
Includes the organization (tenant), its branches, and the working-hours
calendar (weekly schedule plus special-date overrides).

Tables:
    - organizations: 최상위 테넌트 (Top-level tenant with open/close times)
    - branches: 조직 하위 지점 (Branch under organization)
    - organization_hours: 요일별 근무 시간 (Weekly working schedule)
    - organization_special_dates: 휴일/특별 근무일 (Holiday and special-hours overrides)
"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from timekeeper.database import Base


class Organization(Base):
    """조직(테넌트) 모델.

    Organization (tenant) model. ``open_time`` / ``close_time`` are "HH:MM"
    strings in the configured time zone; the overtime scanner only considers
    organizations where both are set.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        name: 조직 이름 (Organization name)
        open_time: 영업 시작 "HH:MM" (Opening time)
        close_time: 영업 종료 "HH:MM" (Closing time)
        late_grace_minutes: 지각 유예(분), 없으면 전역 설정 (Per-org grace override)
        is_active: 활성 상태 (Active status flag)
    """

    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # 영업 시간: Opening/closing time "HH:MM" (null = unknown, skipped by overtime scan)
    open_time: Mapped[str | None] = mapped_column(String(8), nullable=True)
    close_time: Mapped[str | None] = mapped_column(String(8), nullable=True)
    late_grace_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))


class Branch(Base):
    """지점 모델 — Branch (site) within an organization."""

    __tablename__ = "branches"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class OrganizationHours(Base):
    """요일별 근무 시간 모델.

    Weekly schedule row. ``day_of_week`` follows ``date.weekday()`` (0 = Monday).
    """

    __tablename__ = "organization_hours"
    __table_args__ = (
        UniqueConstraint("organization_id", "day_of_week", name="uq_org_hours_weekday"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    is_working_day: Mapped[bool] = mapped_column(Boolean, default=True)
    start_time: Mapped[str] = mapped_column(String(8), nullable=False, default="09:00")
    end_time: Mapped[str] = mapped_column(String(8), nullable=False, default="17:00")


class OrganizationSpecialDate(Base):
    """특별 근무일 모델 — Holiday or special-hours override for a single date."""

    __tablename__ = "organization_special_dates"
    __table_args__ = (
        UniqueConstraint("organization_id", "date", name="uq_org_special_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    is_working_day: Mapped[bool] = mapped_column(Boolean, default=False)
    # 특별 근무 시간: Only used when is_working_day is True; falls back to the weekly row
    start_time: Mapped[str | None] = mapped_column(String(8), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(8), nullable=True)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
