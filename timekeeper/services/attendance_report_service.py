"""근태 리포트 서비스 — 오전/저녁 조직 리포트 생성 및 발송.

Attendance Report Service — Loads roster and shifts, runs the aggregation
engine and dispatches at most one morning and one evening report per
organization per day.

Gating (local time, per organization):
    morning: |now - (start + 5)| <= 5 분
    evening: |now - (end + 30)| <= 5 분
Targets past local midnight are clamped to 23:59. Non-working days are skipped.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Awaitable, Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timekeeper.config import settings
from timekeeper.database import async_session
from timekeeper.models.attendance import AttendanceRecord
from timekeeper.models.organization import Organization
from timekeeper.repositories.attendance_repository import attendance_repository
from timekeeper.repositories.organization_repository import organization_repository
from timekeeper.repositories.user_repository import user_repository
from timekeeper.schemas.report import (
    EveningReport,
    MorningReport,
    ReportSummary,
    RosterEntry,
    ShiftSnapshot,
    WorkingDayInfo,
)
from timekeeper.services import report_aggregation as agg
from timekeeper.services import report_insights
from timekeeper.services.dedup_store import DedupStore, dedup_store, report_key
from timekeeper.services.notification_service import (
    EVENT_EVENING_REPORT,
    EVENT_MORNING_REPORT,
    NotificationService,
    notification_service,
)
from timekeeper.services.organization_hours_service import (
    OrganizationHoursService,
    assess_lateness,
    lateness_start_time,
    organization_hours_service,
)
from timekeeper.utils.clock import ensure_utc, local_day, now_utc
from timekeeper.utils.exceptions import NotFoundError
from timekeeper.utils.time_window import (
    calculate_average_time,
    calculate_percentage,
    minutes_of_day,
    round2,
    time_to_minutes,
    work_day_progress,
)

logger = logging.getLogger(__name__)

REPORT_MORNING = "morning"
REPORT_EVENING = "evening"
COMPARISON_LOOKBACK_DAYS = 7
LAST_MINUTE_OF_DAY = 23 * 60 + 59

TargetProvider = Callable[[AsyncSession, UUID], Awaitable[float | None]]


def _snapshot(record: AttendanceRecord) -> ShiftSnapshot:
    return ShiftSnapshot(
        record_id=record.id,
        user_id=record.user_id,
        check_in_at=ensure_utc(record.check_in_at),
        check_out_at=ensure_utc(record.check_out_at),
        duration=record.duration,
        status=record.status,
    )


def comparison_label(days_back: int) -> str:
    if days_back == 1:
        return "yesterday"
    if days_back == 2:
        return "day before yesterday"
    return f"{days_back} days ago"


def previous_business_day(day: date) -> date:
    """직전 평일 (월~금)."""
    previous = day - timedelta(days=1)
    while previous.weekday() >= 5:
        previous -= timedelta(days=1)
    return previous


def report_target_minutes(clock: str, offset: int) -> int:
    """발송 목표 시각(분) — Clamped to 23:59 so a report is never pushed into the next day."""
    return min(time_to_minutes(clock) + offset, LAST_MINUTE_OF_DAY)


def due_reports(info: WorkingDayInfo, now: datetime) -> list[str]:
    """지금 발송 대상인 리포트 종류 — Kinds whose target minute is within tolerance of ``now``."""
    if not info.is_working_day:
        return []
    current = minutes_of_day(now)
    tolerance = settings.REPORT_TOLERANCE_MINUTES
    due: list[str] = []
    morning_at = report_target_minutes(info.start_time, settings.MORNING_REPORT_OFFSET_MINUTES)
    if abs(current - morning_at) <= tolerance:
        due.append(REPORT_MORNING)
    evening_at = report_target_minutes(info.end_time, settings.EVENING_REPORT_OFFSET_MINUTES)
    if abs(current - evening_at) <= tolerance:
        due.append(REPORT_EVENING)
    return due


class AttendanceReportService:
    """근태 리포트 서비스.

    Report builders take an open session; the scan opens one session per
    organization. Collaborators are injectable for tests.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session,
        store: DedupStore = dedup_store,
        sink: NotificationService = notification_service,
        hours: OrganizationHoursService = organization_hours_service,
        target_provider: TargetProvider = user_repository.get_user_target,
    ) -> None:
        self._session_factory = session_factory
        self._store = store
        self._sink = sink
        self._hours = hours
        self._target_provider = target_provider

    # === 입력 로딩 (Inputs) ===

    async def load_roster(self, db: AsyncSession, organization_id: UUID) -> list[RosterEntry]:
        """활성 명부 + 개인 목표 — Targets default to ``DEFAULT_TARGET_HOURS``."""
        roster: list[RosterEntry] = []
        for user, branch_name in await user_repository.list_active_users(db, organization_id):
            target = await self._target_provider(db, user.id)
            roster.append(
                RosterEntry(
                    user_id=user.id,
                    name=user.full_name,
                    email=user.email,
                    role=user.role,
                    branch_id=user.branch_id,
                    branch_name=branch_name,
                    target_hours=target if target and target > 0 else settings.DEFAULT_TARGET_HOURS,
                )
            )
        return roster

    async def load_shifts(self, db: AsyncSession, organization_id: UUID, day: date) -> list[ShiftSnapshot]:
        records = await attendance_repository.find_shifts_by_day(db, organization_id, day)
        return [_snapshot(record) for record in records]

    async def _get_organization(self, db: AsyncSession, organization_id: UUID) -> Organization:
        organization = await organization_repository.get_by_id(db, organization_id)
        if organization is None:
            raise NotFoundError("조직을 찾을 수 없습니다 (Organization not found)")
        return organization

    async def find_comparison_day(
        self,
        db: AsyncSession,
        organization_id: UUID,
        day: date,
    ) -> tuple[date, str]:
        """비교 기준일 탐색.

        Walks back up to 7 days to the first working day; falls back to the
        previous Monday-to-Friday day labelled "last business day".
        """
        for days_back in range(1, COMPARISON_LOOKBACK_DAYS + 1):
            candidate = day - timedelta(days=days_back)
            info = await self._hours.get_working_day_info(db, organization_id, candidate)
            if info.is_working_day:
                return candidate, comparison_label(days_back)
        return previous_business_day(day), "last business day"

    # === 리포트 생성 (Builders) ===

    async def build_morning_report(
        self,
        db: AsyncSession,
        organization_id: UUID,
        day: date | None = None,
        now: datetime | None = None,
    ) -> MorningReport:
        """오전 리포트 페이로드 생성 — Attendance so far, punctuality and projection."""
        now = ensure_utc(now) if now is not None else now_utc()
        day = day or local_day(now)
        organization = await self._get_organization(db, organization_id)
        info = await self._hours.get_working_day_info(db, organization_id, day)
        grace = await self._hours.grace_minutes(db, organization_id)
        late_start = lateness_start_time(info)

        roster = await self.load_roster(db, organization_id)
        days = agg.combine_user_days(roster, await self.load_shifts(db, organization_id, day), now)

        categories = agg.categorize_employees(days, late_start, grace, info.is_working_day, settings.STANDARD_WORK_HOURS)
        punctuality = agg.punctuality_breakdown(days, late_start, grace)
        progress = work_day_progress(now, info.start_time, settings.WORKDAY_PROGRESS_MINUTES)
        target = agg.target_performance(days, progress)

        total = len(roster)
        present = len(categories.present)
        attendance_rate = calculate_percentage(present, total, 1)
        total_hours = sum(d.hours for d in days)

        logger.info(
            "Morning report for %s on %s: %d/%d present, %d late",
            organization.name, day, present, total, len(punctuality.late) + len(punctuality.very_late),
        )
        return MorningReport(
            organization_id=organization.id,
            organization_name=organization.name,
            report_date=day,
            generated_at=now,
            is_working_day=info.is_working_day,
            organization_start_time=info.start_time,
            organization_close_time=info.end_time,
            summary=ReportSummary(
                total_employees=total,
                present_count=present,
                absent_count=len(categories.absent),
                attendance_rate=attendance_rate,
                total_actual_hours=round2(total_hours),
                average_hours=round2(total_hours / present) if present else 0.0,
                completed_shifts=len(categories.completed),
                total_overtime_minutes=agg.total_overtime_minutes(days, info.expected_work_minutes),
                average_check_in_time=calculate_average_time([d.check_in_at for d in days if d.present]),
            ),
            punctuality=punctuality,
            lateness_summary=agg.lateness_summary(punctuality),
            categories=categories,
            branch_breakdown=agg.build_rollups(days, agg.branch_key, late_start, grace, info.is_working_day),
            role_breakdown=agg.build_rollups(days, agg.role_key, late_start, grace, info.is_working_day),
            target_performance=target,
            insights=report_insights.enhanced_morning_insights(
                attendance_rate, punctuality, present, total, target, categories,
            ),
            recommendations=report_insights.enhanced_morning_recommendations(
                punctuality, attendance_rate, target, categories,
            ),
        )

    async def build_evening_report(
        self,
        db: AsyncSession,
        organization_id: UUID,
        day: date | None = None,
        now: datetime | None = None,
    ) -> EveningReport:
        """저녁 리포트 페이로드 생성 — Full-day figures compared with the last working day."""
        now = ensure_utc(now) if now is not None else now_utc()
        day = day or local_day(now)
        organization = await self._get_organization(db, organization_id)
        info = await self._hours.get_working_day_info(db, organization_id, day)
        grace = await self._hours.grace_minutes(db, organization_id)
        late_start = lateness_start_time(info)

        roster = await self.load_roster(db, organization_id)
        days = agg.combine_user_days(roster, await self.load_shifts(db, organization_id, day), now)

        comparison_date, label = await self.find_comparison_day(db, organization_id, day)
        comparison_info = await self._hours.get_working_day_info(db, organization_id, comparison_date)
        comparison_days = [
            d for d in agg.combine_user_days(
                roster, await self.load_shifts(db, organization_id, comparison_date), now,
            )
            if d.present
        ]
        comparison_hours = {d.entry.user_id: d.hours for d in comparison_days}
        comparison_late = sum(
            1 for d in comparison_days
            if assess_lateness(d.check_in_at, lateness_start_time(comparison_info), grace).is_late
        )

        categories = agg.categorize_employees(days, late_start, grace, info.is_working_day, settings.STANDARD_WORK_HOURS)
        punctuality = agg.punctuality_breakdown(days, late_start, grace)
        target = agg.target_performance(days)
        metrics = agg.employee_metrics(days, comparison_hours, label, late_start, grace)
        lateness = agg.evening_lateness_summary(metrics)

        total = len(roster)
        present = len(categories.present)
        total_hours = sum(d.hours for d in days)
        average_hours = total_hours / present if present else 0.0
        completed = len(categories.completed)

        attendance_change = agg.percent_change(present, len(comparison_days))
        hours_change = round2(total_hours - sum(comparison_hours.values()))
        punctuality_change = agg.punctuality_change(lateness.total_late_employees, comparison_late, len(comparison_days))
        trend = agg.performance_trend(attendance_change, hours_change)
        actions = agg.tomorrow_actions(lateness.total_late_employees, len(categories.absent), average_hours)

        logger.info(
            "Evening report for %s on %s vs %s (%s): trend %s",
            organization.name, day, comparison_date, label, trend,
        )
        return EveningReport(
            organization_id=organization.id,
            organization_name=organization.name,
            report_date=day,
            generated_at=now,
            is_working_day=info.is_working_day,
            organization_start_time=info.start_time,
            organization_close_time=info.end_time,
            summary=ReportSummary(
                total_employees=total,
                present_count=present,
                absent_count=len(categories.absent),
                attendance_rate=calculate_percentage(present, total, 1),
                total_actual_hours=round2(total_hours),
                average_hours=round2(average_hours),
                completed_shifts=completed,
                total_overtime_minutes=agg.total_overtime_minutes(days, info.expected_work_minutes),
                average_check_in_time=calculate_average_time([d.check_in_at for d in days if d.present]),
            ),
            punctuality=punctuality,
            lateness_summary=lateness,
            categories=categories,
            branch_breakdown=agg.build_rollups(days, agg.branch_key, late_start, grace, info.is_working_day),
            role_breakdown=agg.build_rollups(days, agg.role_key, late_start, grace, info.is_working_day),
            target_performance=target,
            insights=report_insights.enhanced_evening_insights(metrics, completed, average_hours, target, categories),
            comparison_date=comparison_date,
            comparison_label=label,
            employee_metrics=metrics,
            attendance_change=attendance_change,
            hours_change=hours_change,
            punctuality_change=punctuality_change,
            performance_trend=trend,
            overall_performance=agg.overall_performance(trend),
            punctuality_rate=agg.punctuality_rate(metrics),
            top_performers=agg.top_performers(metrics),
            improvement_areas=agg.improvement_areas(metrics),
            recommendations=actions,
            tomorrow_actions=actions,
        )

    # === 발송 (Dispatch) ===

    async def dispatch(self, db: AsyncSession, organization: Organization, kind: str, now: datetime) -> bool:
        """리포트 1회 발송.

        Returns True when a report was emitted. The dedup key is claimed before
        any I/O so overlapping scans cannot both send; it is released again
        when the organization has no owner/admin/hr recipients or building
        the report fails.
        """
        day = local_day(now)
        key = report_key(kind, organization.id, day)
        if not self._store.claim(key):
            return False

        try:
            recipients = await user_repository.list_report_recipients(db, organization.id)
            if not recipients:
                logger.warning("No report recipients for org %s, skipping %s report", organization.id, kind)
                self._store.release(key)
                return False

            if kind == REPORT_MORNING:
                report = await self.build_morning_report(db, organization.id, day, now)
                event = EVENT_MORNING_REPORT
            else:
                report = await self.build_evening_report(db, organization.id, day, now)
                event = EVENT_EVENING_REPORT
        except Exception:
            self._store.release(key)
            raise

        self._sink.emit(event, report.model_dump(mode="json"), recipients)
        logger.info("Dispatched %s report for org %s to %d recipient(s)", kind, organization.id, len(recipients))
        return True

    async def _scan_organization(self, organization: Organization, now: datetime) -> int:
        async with self._session_factory() as db:
            info = await self._hours.get_working_day_info(db, organization.id, local_day(now))
            sent = 0
            for kind in due_reports(info, now):
                if await self.dispatch(db, organization, kind, now):
                    sent += 1
            return sent

    async def run_scan(self, now: datetime | None = None) -> int:
        """모든 활성 조직에 대해 리포트 게이트 평가 — Returns the number of reports dispatched.

        Organizations are processed concurrently; one failing organization is
        logged and does not affect the others.
        """
        now = ensure_utc(now) if now is not None else now_utc()
        async with self._session_factory() as db:
            organizations = await organization_repository.list_active(db)

        results = await asyncio.gather(
            *(self._scan_organization(org, now) for org in organizations),
            return_exceptions=True,
        )
        sent = 0
        for organization, result in zip(organizations, results):
            if isinstance(result, BaseException):
                logger.error("Report scan failed for org %s: %s", organization.id, result, exc_info=result)
                continue
            sent += result
        return sent


# 싱글턴 인스턴스: Singleton instance
attendance_report_service: AttendanceReportService = AttendanceReportService()
