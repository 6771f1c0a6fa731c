"""근태 관리 관련 SQLAlchemy ORM 모델 정의.

Attendance SQLAlchemy ORM model definitions.

Tables:
    - attendance_records: 교대 기록 (One shift per row: check-in to check-out)
    - attendance_breaks: 휴식 구간 (Break intervals owned by a shift)
"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timekeeper.database import Base

# 근태 상태: Record status values
STATUS_PRESENT = "present"
STATUS_ON_BREAK = "on_break"
STATUS_COMPLETED = "completed"


class AttendanceRecord(Base):
    """교대 기록 모델.

    Shift record. Status flow: present -> on_break -> present -> completed.
    At most one non-completed record per (user, organization, work_date); this is
    enforced by ``AttendanceService.check_in``. Completed records are never mutated.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        organization_id: 소속 조직 FK (Organization scope)
        user_id: 사용자 FK (Employee)
        branch_id: 지점 FK, 선택 (Optional branch at check-in)
        work_date: 근무 날짜, 설정 시간대 기준 (Local calendar day of check-in)
        check_in_at: 출근 시각 UTC (Check-in timestamp)
        check_out_at: 퇴근 시각 UTC, 선택 (Check-out timestamp)
        status: 상태 (present | on_break | completed)
        duration: 순 근무 시간 "Xh Ym", 퇴근 시 기록 (Net worked time, set at check-out)
        total_break_minutes: 총 휴식 시간(분) (Accumulated break minutes)
        break_count: 휴식 횟수 (Number of breaks started)
    """

    __tablename__ = "attendance_records"
    __table_args__ = (
        Index("ix_attendance_user_date", "user_id", "work_date"),
        Index("ix_attendance_org_date", "organization_id", "work_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    branch_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("branches.id", ondelete="SET NULL"), nullable=True)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    check_in_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    check_out_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_PRESENT)
    duration: Mapped[str | None] = mapped_column(String(20), nullable=True)
    total_break_minutes: Mapped[int] = mapped_column(Integer, default=0)
    break_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # 휴식 구간: Owned break intervals (cascade delete, ordered by start)
    breaks: Mapped[list["BreakInterval"]] = relationship(
        back_populates="attendance",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="BreakInterval.start_at",
    )

    @property
    def open_break(self) -> "BreakInterval | None":
        """진행 중인 휴식 — The single open break, if any."""
        for interval in self.breaks:
            if interval.end_at is None:
                return interval
        return None


class BreakInterval(Base):
    """휴식 구간 모델 — Break interval; ``end_at`` is null while the break is open."""

    __tablename__ = "attendance_breaks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    attendance_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("attendance_records.id", ondelete="CASCADE"), nullable=False)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    attendance: Mapped[AttendanceRecord] = relationship(back_populates="breaks")
