"""근태 관리 서비스 — 출근/휴식/퇴근 상태 머신.

Attendance Service — Per-user daily attendance state machine.

State flow (per local calendar day):
    NONE -> present -> (on_break <-> present) -> completed

Guard violations raise typed errors from ``timekeeper.utils.exceptions``;
they are never retried. Records store no overtime; ``build_timing_response``
asks the working-hours service for lateness, early departure and overtime.
"""

import logging
from datetime import date, datetime
from typing import Literal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from timekeeper.models.attendance import (
    STATUS_COMPLETED,
    STATUS_ON_BREAK,
    STATUS_PRESENT,
    AttendanceRecord,
    BreakInterval,
)
from timekeeper.repositories.attendance_repository import attendance_repository
from timekeeper.services.organization_hours_service import organization_hours_service
from timekeeper.utils.clock import ensure_utc, local_day, now_utc
from timekeeper.utils.exceptions import (
    DuplicateCheckIn,
    InvalidTimeRange,
    NoActiveShift,
    NoOpenBreak,
    NotCheckedIn,
)
from timekeeper.utils.time_window import (
    BreakSpan,
    break_minutes,
    calculate_work_session,
    format_duration,
    split_multi_day_shift,
)

logger = logging.getLogger(__name__)

BreakAction = Literal["start", "end"]


def _spans(record: AttendanceRecord) -> list[BreakSpan]:
    return [BreakSpan(start=b.start_at, end=b.end_at) for b in record.breaks]


class AttendanceService:
    """근태 상태 머신 서비스.

    Attendance state machine: check-in, break start/end, and check-out.
    """

    async def check_in(
        self,
        db: AsyncSession,
        user_id: UUID,
        organization_id: UUID,
        branch_id: UUID | None = None,
        at: datetime | None = None,
    ) -> AttendanceRecord:
        """출근을 기록합니다.

        Create a ``present`` shift for the local calendar day of ``at``.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            user_id: 사용자 UUID (User UUID)
            organization_id: 조직 UUID (Organization UUID)
            branch_id: 지점 UUID, 선택 (Optional branch UUID)
            at: 출근 시각, 기본값 현재 (Check-in time, defaults to now)

        Returns:
            AttendanceRecord: 생성된 교대 기록 (Created shift)

        Raises:
            DuplicateCheckIn: 같은 날 미완료 교대가 이미 존재 (Open shift exists for that day)
        """
        at = ensure_utc(at) if at is not None else now_utc()
        work_date: date = local_day(at)

        existing = await attendance_repository.find_open_shift(db, user_id, work_date)
        if existing is not None:
            raise DuplicateCheckIn()

        record = AttendanceRecord(
            organization_id=organization_id,
            user_id=user_id,
            branch_id=branch_id,
            work_date=work_date,
            check_in_at=at,
            status=STATUS_PRESENT,
            total_break_minutes=0,
            break_count=0,
            breaks=[],
        )
        await attendance_repository.persist(db, record)
        logger.info("User %s checked in at %s (org %s)", user_id, at.isoformat(), organization_id)
        return record

    async def check_out(
        self,
        db: AsyncSession,
        user_id: UUID,
        at: datetime | None = None,
    ) -> AttendanceRecord:
        """퇴근을 기록합니다.

        Close the user's latest open shift. An open break is closed at ``at``
        first so it is counted in the break total.

        Raises:
            NoActiveShift: 진행 중 교대 없음 (No open shift)
            InvalidTimeRange: at <= check_in_at
        """
        at = ensure_utc(at) if at is not None else now_utc()

        record = await attendance_repository.find_open_shift(db, user_id)
        if record is None:
            raise NoActiveShift()

        check_in_at = ensure_utc(record.check_in_at)
        if at <= check_in_at:
            raise InvalidTimeRange("Check-out must be after check-in")

        # 진행 중 휴식 자동 종료: Auto-close an open break at the check-out instant
        open_break = record.open_break
        if open_break is not None:
            open_break.end_at = max(at, ensure_utc(open_break.start_at))

        total_breaks = break_minutes(_spans(record))
        session = calculate_work_session(check_in_at, at, total_breaks)

        record.check_out_at = at
        record.total_break_minutes = session.break_minutes
        record.duration = format_duration(session.net_minutes)
        record.status = STATUS_COMPLETED
        await attendance_repository.persist(db, record)

        logger.info(
            "User %s checked out: net %s, breaks %dm",
            user_id, record.duration, record.total_break_minutes,
        )
        return record

    async def manage_break(
        self,
        db: AsyncSession,
        user_id: UUID,
        action: BreakAction,
        at: datetime | None = None,
    ) -> AttendanceRecord:
        """휴식 시작/종료를 기록합니다.

        Raises:
            NotCheckedIn: start 시 상태가 present가 아님 (start outside ``present``)
            NoOpenBreak: end 시 상태가 on_break가 아님 (end outside ``on_break``)
            InvalidTimeRange: 시각 순서 오류 (timestamp before check-in or break start)
        """
        at = ensure_utc(at) if at is not None else now_utc()
        record = await attendance_repository.find_open_shift(db, user_id)

        if action == "start":
            if record is None or record.status != STATUS_PRESENT:
                raise NotCheckedIn()
            if at < ensure_utc(record.check_in_at):
                raise InvalidTimeRange("Break cannot start before check-in")
            last_end = max((ensure_utc(b.end_at) for b in record.breaks if b.end_at is not None), default=None)
            if last_end is not None and at < last_end:
                raise InvalidTimeRange("Breaks cannot overlap")
            record.breaks.append(BreakInterval(start_at=at))
            record.break_count = (record.break_count or 0) + 1
            record.status = STATUS_ON_BREAK
        elif action == "end":
            open_break = record.open_break if record is not None else None
            if record is None or record.status != STATUS_ON_BREAK or open_break is None:
                raise NoOpenBreak()
            if at < ensure_utc(open_break.start_at):
                raise InvalidTimeRange("Break cannot end before it starts")
            open_break.end_at = at
            record.total_break_minutes = break_minutes(_spans(record))
            record.status = STATUS_PRESENT
        else:
            raise ValueError(f"Unknown break action: {action}")

        await attendance_repository.persist(db, record)
        logger.debug("User %s break %s at %s", user_id, action, at.isoformat())
        return record

    async def get_today(
        self,
        db: AsyncSession,
        user_id: UUID,
        day: date | None = None,
    ) -> AttendanceRecord | None:
        """해당 날짜의 최근 교대 — Latest shift of the day (defaults to today)."""
        return await attendance_repository.find_latest_for_day(db, user_id, day or local_day(now_utc()))

    def build_response(self, record: AttendanceRecord) -> dict:
        """교대 기록 응답 딕셔너리를 생성합니다.

        Build the API response dict for a shift record.
        """
        return {
            "id": str(record.id),
            "user_id": str(record.user_id),
            "organization_id": str(record.organization_id),
            "branch_id": str(record.branch_id) if record.branch_id else None,
            "work_date": record.work_date,
            "check_in_at": ensure_utc(record.check_in_at),
            "check_out_at": ensure_utc(record.check_out_at),
            "status": record.status,
            "duration": record.duration,
            "total_break_minutes": record.total_break_minutes or 0,
            "break_count": record.break_count or 0,
            "breaks": [
                {"start_at": ensure_utc(b.start_at), "end_at": ensure_utc(b.end_at)}
                for b in record.breaks
            ],
        }

    async def build_timing_response(self, db: AsyncSession, record: AttendanceRecord) -> dict:
        """출근/퇴근 응답 — ``build_response`` plus the working-hours verdicts.

        Lateness is always included. Once the shift is closed, the early
        departure, the overtime and the per-day split at local midnight are
        added; overtime is counted per calendar day against that day's
        expected minutes.
        """
        response = self.build_response(record)
        check_in_at = ensure_utc(record.check_in_at)
        lateness = await organization_hours_service.is_user_late(db, record.organization_id, check_in_at)
        response.update(is_late=lateness.is_late, late_minutes=lateness.late_minutes)
        if record.check_out_at is None:
            return response

        check_out_at = ensure_utc(record.check_out_at)
        left_early, early_minutes = await organization_hours_service.is_user_early(
            db, record.organization_id, check_out_at,
        )
        segments = split_multi_day_shift(check_in_at, check_out_at, record.total_break_minutes or 0)
        overtime = 0
        for segment in segments:
            overtime += await organization_hours_service.calculate_overtime(
                db, record.organization_id, segment.day, segment.work_minutes,
            )
        response.update(
            left_early=left_early,
            early_minutes=early_minutes,
            overtime_minutes=overtime,
            segments=[
                {"day": s.day, "work_minutes": s.work_minutes, "break_minutes": s.break_minutes}
                for s in segments
            ],
        )
        return response


# 싱글턴 인스턴스: Singleton instance
attendance_service: AttendanceService = AttendanceService()
