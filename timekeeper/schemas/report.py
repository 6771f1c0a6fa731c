"""근태 리포트 Pydantic 스키마 정의.

Attendance report schema definitions.
Engine inputs (roster entries, shift snapshots) and the structured report
payload. ``model_dump(mode="json")`` yields plain data for any renderer
(email, dashboard, API response).
"""

from datetime import date, datetime
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel


class PunctualityBucket(str, Enum):
    """출근 시각 분류 — Check-in classification against the organization start time."""

    EARLY = "early"
    ON_TIME = "on_time"
    LATE = "late"
    VERY_LATE = "very_late"


class LatenessInfo(BaseModel):
    is_late: bool
    late_minutes: int


class WorkingDayInfo(BaseModel):
    """해당 날짜의 근무 설정 — Resolved working-day configuration for one date."""

    is_working_day: bool
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"
    expected_work_minutes: int


# === 엔진 입력 (Engine inputs) ===

class RosterEntry(BaseModel):
    """활성 사용자 명부 항목 — Active roster member."""

    user_id: UUID
    name: str
    email: str | None = None
    role: str
    branch_id: UUID | None = None
    branch_name: str | None = None
    target_hours: float


class ShiftSnapshot(BaseModel):
    """교대 스냅샷 — Read-only view of one attendance record."""

    record_id: UUID
    user_id: UUID
    check_in_at: datetime
    check_out_at: datetime | None = None
    duration: str | None = None
    status: str


# === 리포트 구성 요소 (Report building blocks) ===

class EmployeeSummary(BaseModel):
    user_id: UUID
    name: str
    email: str | None = None
    role: str
    branch_name: str | None = None
    check_in_time: str | None = None  # "HH:MM" local
    check_out_time: str | None = None
    hours_worked: float = 0.0
    late_minutes: int = 0
    late_status: str | None = None  # late | very-late | extremely-late


class EmployeeCategories(BaseModel):
    """직원 분류 — present ⊇ currently_working ∪ completed; overtime ⊆ present."""

    present: list[EmployeeSummary] = []
    absent: list[EmployeeSummary] = []
    currently_working: list[EmployeeSummary] = []
    completed: list[EmployeeSummary] = []
    overtime: list[EmployeeSummary] = []


class PunctualityEntry(BaseModel):
    user_id: UUID
    name: str
    branch_name: str | None = None
    check_in_time: str
    bucket: PunctualityBucket
    late_minutes: int = 0
    extremely_late: bool = False


class PunctualityBreakdown(BaseModel):
    """출근 시간 분석 — Percentages are over the present population (0 when none)."""

    early: list[PunctualityEntry] = []
    on_time: list[PunctualityEntry] = []
    late: list[PunctualityEntry] = []
    very_late: list[PunctualityEntry] = []
    extremely_late_count: int = 0
    early_percentage: int = 0
    on_time_percentage: int = 0
    late_percentage: int = 0
    very_late_percentage: int = 0
    total_late_percentage: int = 0  # late + very_late, rounded once
    total_late_minutes: int = 0
    average_late_minutes: float = 0.0


class RollupEntry(BaseModel):
    """지점/역할별 집계 — Branch or role rollup."""

    name: str
    total_employees: int
    present_count: int
    absent_count: int
    currently_working_count: int
    completed_count: int
    attendance_rate: int
    total_hours: float
    average_hours: float
    early_count: int = 0
    on_time_count: int = 0
    late_count: int = 0
    very_late_count: int = 0


class WorstLateArrival(BaseModel):
    employee: str
    minutes: int


class LatenessSummary(BaseModel):
    total_late_employees: int = 0
    total_late_minutes: int = 0
    average_late_minutes: float = 0.0
    worst_late_arrival: WorstLateArrival | None = None
    punctuality_trend: str | None = None


class TargetPerformance(BaseModel):
    """목표 대비 실적 — Team hours against summed individual targets."""

    expected_daily_hours: float
    actual_total_hours: float
    target_achievement_rate: float
    hours_over_target: float
    hours_under_target: float
    team_efficiency_rating: str
    individual_targets_met: int
    individual_targets_missed: int
    # 오전 리포트 전용 예측: Morning projection only
    projected_end_of_day_hours: float | None = None
    on_track: bool | None = None
    hours_gap_analysis: str | None = None


class ReportSummary(BaseModel):
    total_employees: int
    present_count: int
    absent_count: int
    attendance_rate: float
    total_actual_hours: float
    average_hours: float = 0.0
    completed_shifts: int = 0
    total_overtime_minutes: int = 0
    average_check_in_time: str = "N/A"  # 평균 출근 시각 "HH:MM" (Average check-in of present employees)


class EmployeeDayMetric(BaseModel):
    """개인별 일일 지표 (저녁 리포트) — Per-employee evening metric."""

    user_id: UUID
    name: str
    role: str
    branch_name: str | None = None
    check_in_time: str | None = None
    check_out_time: str | None = None
    hours_worked: float
    is_late: bool
    late_minutes: int
    status: str  # Absent | Late | On Time | Completed | Currently Working
    target_hours: float
    target_met: bool
    comparison_hours: float
    comparison_text: str


class TopPerformer(BaseModel):
    name: str
    hours_worked: float
    achievement: str


class ImprovementArea(BaseModel):
    area: str
    description: str
    count: int


class BaseReport(BaseModel):
    organization_id: UUID
    organization_name: str
    report_date: date
    generated_at: datetime
    is_working_day: bool
    organization_start_time: str
    organization_close_time: str
    summary: ReportSummary
    punctuality: PunctualityBreakdown
    lateness_summary: LatenessSummary
    categories: EmployeeCategories
    branch_breakdown: list[RollupEntry]
    role_breakdown: list[RollupEntry]
    target_performance: TargetPerformance
    insights: list[str]
    recommendations: list[str] = []


class MorningReport(BaseReport):
    """오전 출근 리포트 — Morning attendance report payload."""

    kind: Literal["morning"] = "morning"


class EveningReport(BaseReport):
    """저녁 마감 리포트 — Evening wrap-up report payload."""

    kind: Literal["evening"] = "evening"
    comparison_date: date
    comparison_label: str
    employee_metrics: list[EmployeeDayMetric]
    attendance_change: int
    hours_change: float
    punctuality_change: int
    performance_trend: str
    overall_performance: str
    punctuality_rate: int
    top_performers: list[TopPerformer]
    improvement_areas: list[ImprovementArea]
    tomorrow_actions: list[str]
