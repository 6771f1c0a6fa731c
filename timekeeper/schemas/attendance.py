"""근태 관련 Pydantic 요청/응답 스키마 정의.

Attendance Pydantic request/response schema definitions.
``at`` defaults to the server clock when omitted.
"""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel


class CheckInRequest(BaseModel):
    """출근 요청 스키마.

    Attributes:
        user_id: 사용자 UUID (Employee)
        organization_id: 조직 UUID (Organization)
        branch_id: 지점 UUID, 선택 (Optional branch)
        at: 출근 시각, 선택 (Check-in time; server time when omitted)
    """

    user_id: UUID
    organization_id: UUID
    branch_id: UUID | None = None
    at: datetime | None = None


class CheckOutRequest(BaseModel):
    """퇴근 요청 스키마."""

    user_id: UUID
    at: datetime | None = None


class BreakRequest(BaseModel):
    """휴식 시작/종료 요청 스키마."""

    user_id: UUID
    action: Literal["start", "end"]  # 휴식 시작 또는 종료 (Start or end a break)
    at: datetime | None = None


class BreakIntervalResponse(BaseModel):
    start_at: datetime
    end_at: datetime | None = None


class ShiftSegmentResponse(BaseModel):
    """자정 기준 분할 구간 — One local calendar day of a shift."""

    day: date
    work_minutes: int
    break_minutes: int


class AttendanceResponse(BaseModel):
    """근태 기록 응답 스키마.

    Attendance record response schema returned from API.
    """

    id: str  # 근태 UUID 문자열 (Record UUID as string)
    user_id: str
    organization_id: str
    branch_id: str | None = None
    work_date: date  # 근무 날짜 (Local calendar day)
    check_in_at: datetime
    check_out_at: datetime | None = None
    status: str  # present | on_break | completed
    duration: str | None = None  # 순 근무 시간 "Xh Ym" (Net worked time)
    total_break_minutes: int = 0
    break_count: int = 0
    breaks: list[BreakIntervalResponse] = []
    # 근무 시간 판정, 출근/퇴근 응답 전용: Check-in / check-out responses only
    is_late: bool | None = None
    late_minutes: int | None = None
    left_early: bool | None = None
    early_minutes: int | None = None
    overtime_minutes: int | None = None  # 요일별 기대 근무 시간 초과분 (Beyond each day's expected minutes)
    segments: list[ShiftSegmentResponse] | None = None


class OvertimeCheckResponse(BaseModel):
    """수동 초과근무 점검 응답 — Manual overtime scan result."""

    message: str
    processed: int
