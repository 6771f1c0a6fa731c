"""리포트 집계 엔진 — 순수 계산 함수.

Report aggregation engine. Pure functions over a roster, shift snapshots and a
single ``now`` snapshot; no I/O. ``attendance_report_service`` loads the inputs
and wraps these results into report payloads.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Sequence
from uuid import UUID

from timekeeper.schemas.report import (
    EmployeeCategories,
    EmployeeDayMetric,
    EmployeeSummary,
    ImprovementArea,
    LatenessInfo,
    LatenessSummary,
    PunctualityBreakdown,
    PunctualityBucket,
    PunctualityEntry,
    RollupEntry,
    RosterEntry,
    ShiftSnapshot,
    TargetPerformance,
    TopPerformer,
    WorstLateArrival,
)
from timekeeper.services.organization_hours_service import assess_lateness
from timekeeper.utils.clock import ensure_utc
from timekeeper.utils.time_window import (
    calculate_efficiency,
    minutes_of_day,
    minutes_to_time,
    real_time_hours,
    round2,
    round_half_up,
    time_to_minutes,
)

VERY_LATE_MINUTES = 30
EXTREMELY_LATE_MINUTES = 60
TARGET_MET_RATIO = 0.9
UNASSIGNED_BRANCH = "Unassigned"
FULL_DAY_HOURS = 8


def format_hours(value: float) -> str:
    """2자리 반올림 후 불필요한 0 제거 — 8.5 -> "8.5", 8.0 -> "8"."""
    return f"{round2(value):.2f}".rstrip("0").rstrip(".")


def _clock(dt: datetime | None) -> str | None:
    return minutes_to_time(minutes_of_day(dt)) if dt is not None else None


# === 사용자별 일일 집계 (Per-user day) ===

@dataclass
class UserDay:
    """한 사용자의 하루 — All shifts of one roster member on one day, combined."""

    entry: RosterEntry
    shifts: list[ShiftSnapshot] = field(default_factory=list)
    hours: float = 0.0

    @property
    def present(self) -> bool:
        return bool(self.shifts)

    @property
    def is_open(self) -> bool:
        return any(s.check_out_at is None for s in self.shifts)

    @property
    def check_in_at(self) -> datetime | None:
        if not self.shifts:
            return None
        return min(ensure_utc(s.check_in_at) for s in self.shifts)

    @property
    def check_out_at(self) -> datetime | None:
        if not self.shifts or self.is_open:
            return None
        return max(ensure_utc(s.check_out_at) for s in self.shifts)


def combine_user_days(
    roster: Sequence[RosterEntry],
    shifts: Iterable[ShiftSnapshot],
    now: datetime,
) -> list[UserDay]:
    """명부 순서대로 사용자별 하루를 만듭니다.

    Shifts of users missing from the roster are ignored. Hours of several
    shifts are summed; the earliest check-in drives punctuality.
    """
    days: dict[UUID, UserDay] = {entry.user_id: UserDay(entry=entry) for entry in roster}
    for shift in shifts:
        day = days.get(shift.user_id)
        if day is None:
            continue
        day.shifts.append(shift)
        day.hours += real_time_hours(shift.check_in_at, shift.check_out_at, shift.duration, now)
    return list(days.values())


# === 출근 시각 분류 (Punctuality) ===

def late_status_label(late_minutes: int) -> str | None:
    if late_minutes >= EXTREMELY_LATE_MINUTES:
        return "extremely-late"
    if late_minutes >= VERY_LATE_MINUTES:
        return "very-late"
    if late_minutes > 0:
        return "late"
    return None


def classify_check_in(
    check_in_at: datetime,
    start_time: str | None,
    grace_minutes: int = 0,
) -> tuple[PunctualityBucket, LatenessInfo]:
    """출근 시각을 버킷으로 분류 — (bucket, lateness).

    ``start_time`` is None on a non-working day; every check-in is then on time.
    """
    lateness = assess_lateness(check_in_at, start_time, grace_minutes)
    if lateness.is_late:
        bucket = PunctualityBucket.VERY_LATE if lateness.late_minutes >= VERY_LATE_MINUTES else PunctualityBucket.LATE
        return bucket, lateness
    if start_time and minutes_of_day(check_in_at) < time_to_minutes(start_time):
        return PunctualityBucket.EARLY, lateness
    return PunctualityBucket.ON_TIME, lateness


def punctuality_breakdown(
    days: Sequence[UserDay],
    start_time: str | None,
    grace_minutes: int = 0,
) -> PunctualityBreakdown:
    """출근 분포.

    Percentages are over the present population and are 0 when nobody is
    present. ``total_late_percentage`` rounds the combined late share once, so
    it can differ by one from ``late_percentage + very_late_percentage``.
    """
    result = PunctualityBreakdown()
    present = [day for day in days if day.present]
    for day in present:
        bucket, lateness = classify_check_in(day.check_in_at, start_time, grace_minutes)
        entry = PunctualityEntry(
            user_id=day.entry.user_id,
            name=day.entry.name,
            branch_name=day.entry.branch_name,
            check_in_time=_clock(day.check_in_at),
            bucket=bucket,
            late_minutes=lateness.late_minutes,
            extremely_late=lateness.late_minutes >= EXTREMELY_LATE_MINUTES,
        )
        getattr(result, bucket.value).append(entry)
        result.total_late_minutes += lateness.late_minutes

    late_count = len(result.late) + len(result.very_late)
    result.extremely_late_count = sum(1 for e in result.very_late if e.extremely_late)
    if present:
        total = len(present)
        result.early_percentage = round_half_up(len(result.early) / total * 100)
        result.on_time_percentage = round_half_up(len(result.on_time) / total * 100)
        result.late_percentage = round_half_up(len(result.late) / total * 100)
        result.very_late_percentage = round_half_up(len(result.very_late) / total * 100)
        result.total_late_percentage = round_half_up(late_count / total * 100)
    if late_count:
        result.average_late_minutes = round2(result.total_late_minutes / late_count)
    return result


def lateness_summary(punctuality: PunctualityBreakdown) -> LatenessSummary:
    late_entries = punctuality.late + punctuality.very_late
    worst = max(late_entries, key=lambda e: e.late_minutes, default=None)
    return LatenessSummary(
        total_late_employees=len(late_entries),
        total_late_minutes=punctuality.total_late_minutes,
        average_late_minutes=punctuality.average_late_minutes,
        worst_late_arrival=WorstLateArrival(employee=worst.name, minutes=worst.late_minutes) if worst else None,
    )


# === 직원 분류 (Categories) ===

def employee_summary(day: UserDay, lateness: LatenessInfo | None = None) -> EmployeeSummary:
    late_minutes = lateness.late_minutes if lateness else 0
    return EmployeeSummary(
        user_id=day.entry.user_id,
        name=day.entry.name,
        email=day.entry.email,
        role=day.entry.role,
        branch_name=day.entry.branch_name,
        check_in_time=_clock(day.check_in_at),
        check_out_time=_clock(day.check_out_at),
        hours_worked=round2(day.hours),
        late_minutes=late_minutes,
        late_status=late_status_label(late_minutes),
    )


def categorize_employees(
    days: Sequence[UserDay],
    start_time: str | None,
    grace_minutes: int,
    is_working_day: bool,
    standard_hours: float,
) -> EmployeeCategories:
    """present / absent / currently_working / completed / overtime 분류.

    Absent users are only listed on working days.
    """
    categories = EmployeeCategories()
    for day in days:
        if not day.present:
            if is_working_day:
                categories.absent.append(employee_summary(day))
            continue
        summary = employee_summary(day, assess_lateness(day.check_in_at, start_time, grace_minutes))
        categories.present.append(summary)
        if day.is_open:
            categories.currently_working.append(summary)
        else:
            categories.completed.append(summary)
        if day.hours > standard_hours:
            categories.overtime.append(summary)
    return categories


# === 지점/역할 집계 (Rollups) ===

@dataclass
class _RollupAccumulator:
    total: int = 0
    present: int = 0
    absent: int = 0
    working: int = 0
    completed: int = 0
    hours: float = 0.0
    buckets: dict[PunctualityBucket, int] = field(default_factory=lambda: defaultdict(int))


def build_rollups(
    days: Sequence[UserDay],
    key: Callable[[RosterEntry], str],
    start_time: str | None,
    grace_minutes: int,
    is_working_day: bool,
) -> list[RollupEntry]:
    """그룹별 집계 (2단계).

    First pass collects every key from the roster, second pass accumulates into
    a fresh structure per key. Sorted by name.
    """
    groups: dict[str, _RollupAccumulator] = {}
    for day in days:
        groups.setdefault(key(day.entry), _RollupAccumulator())

    for day in days:
        acc = groups[key(day.entry)]
        acc.total += 1
        if not day.present:
            if is_working_day:
                acc.absent += 1
            continue
        acc.present += 1
        acc.hours += day.hours
        if day.is_open:
            acc.working += 1
        else:
            acc.completed += 1
        bucket, _ = classify_check_in(day.check_in_at, start_time, grace_minutes)
        acc.buckets[bucket] += 1

    return [
        RollupEntry(
            name=name,
            total_employees=acc.total,
            present_count=acc.present,
            absent_count=acc.absent,
            currently_working_count=acc.working,
            completed_count=acc.completed,
            attendance_rate=round_half_up(acc.present / acc.total * 100) if acc.total else 0,
            total_hours=round2(acc.hours),
            average_hours=round2(acc.hours / acc.present) if acc.present else 0.0,
            early_count=acc.buckets[PunctualityBucket.EARLY],
            on_time_count=acc.buckets[PunctualityBucket.ON_TIME],
            late_count=acc.buckets[PunctualityBucket.LATE],
            very_late_count=acc.buckets[PunctualityBucket.VERY_LATE],
        )
        for name, acc in sorted(groups.items())
    ]


def branch_key(entry: RosterEntry) -> str:
    return entry.branch_name or UNASSIGNED_BRANCH


def role_key(entry: RosterEntry) -> str:
    return entry.role


# === 목표 대비 실적 (Targets) ===

def efficiency_rating(rate: float) -> str:
    if rate >= 95:
        return "Excellent"
    if rate >= 85:
        return "Good"
    if rate >= 75:
        return "Fair"
    return "Poor"


def target_met(hours: float, target_hours: float) -> bool:
    return hours >= target_hours * TARGET_MET_RATIO


def target_performance(days: Sequence[UserDay], progress: float | None = None) -> TargetPerformance:
    """팀 목표 대비 실적.

    With ``progress`` (morning), the end-of-day projection is filled in:
    ``actual / progress`` (or ``actual`` when progress is 0) and on track when
    the projection reaches 90% of the expected hours.
    """
    expected = sum(day.entry.target_hours for day in days)
    actual = sum(day.hours for day in days)
    rate = calculate_efficiency(actual * 60, expected * 60)
    met = sum(1 for day in days if target_met(day.hours, day.entry.target_hours))

    result = TargetPerformance(
        expected_daily_hours=round2(expected),
        actual_total_hours=round2(actual),
        target_achievement_rate=rate,
        hours_over_target=round2(max(0.0, actual - expected)),
        hours_under_target=round2(max(0.0, expected - actual)),
        team_efficiency_rating=efficiency_rating(rate),
        individual_targets_met=met,
        individual_targets_missed=len(days) - met,
    )
    if progress is not None:
        projected = actual / progress if progress > 0 else actual
        deficit = max(0.0, expected - actual)
        result.projected_end_of_day_hours = round2(projected)
        result.on_track = projected >= expected * TARGET_MET_RATIO
        result.hours_gap_analysis = (
            f"{format_hours(deficit)} hours behind target" if deficit > 0 else "On track or ahead of target"
        )
    return result


def total_overtime_minutes(days: Sequence[UserDay], expected_work_minutes: int) -> int:
    """기대 근무 시간 초과분 합계(분)."""
    expected_hours = expected_work_minutes / 60
    return round_half_up(sum(max(0.0, day.hours - expected_hours) * 60 for day in days if day.present))


# === 저녁 리포트 개인 지표 (Evening metrics) ===

def comparison_text(today_hours: float, comparison_hours: float, label: str) -> str:
    """전일 대비 문구 — Human comparison of today's hours against the comparison day."""
    diff = today_hours - comparison_hours
    if comparison_hours == 0 and today_hours == 0:
        return f"No work recorded today or {label}"
    if comparison_hours == 0:
        if today_hours >= 6:
            return f"New activity: {format_hours(today_hours)}h worked (no {label} data)"
        return f"{format_hours(today_hours)}h worked (no {label} data)"
    if today_hours == 0:
        return f"No work today (worked {format_hours(comparison_hours)}h {label})"
    if abs(diff) < 0.1:
        return f"Consistent: {format_hours(today_hours)}h (similar to {label})"
    if diff > 0.5:
        percent = round_half_up(diff / comparison_hours * 100)
        if percent >= 50:
            return f"Strong increase: +{format_hours(diff)}h (+{percent}% vs {label})"
        return f"+{format_hours(diff)}h more than {label}"
    if diff < -0.5:
        percent = round_half_up(abs(diff) / comparison_hours * 100)
        if percent >= 50:
            return f"Significant decrease: {format_hours(abs(diff))}h less (-{percent}% vs {label})"
        return f"{format_hours(abs(diff))}h less than {label}"
    if diff > 0:
        return f"Slightly more: +{format_hours(diff)}h vs {label}"
    return f"Slightly less: {format_hours(abs(diff))}h vs {label}"


def employee_status(day: UserDay, is_late: bool) -> str:
    if not day.present:
        return "Absent"
    if not day.is_open:
        return "Completed"
    if day.hours > 0:
        return "Currently Working"
    return "Late" if is_late else "On Time"


def employee_metrics(
    days: Sequence[UserDay],
    comparison_hours: dict[UUID, float],
    label: str,
    start_time: str | None,
    grace_minutes: int,
) -> list[EmployeeDayMetric]:
    """개인별 지표 — Sorted by hours worked (desc), punctual first on ties."""
    metrics: list[EmployeeDayMetric] = []
    for day in days:
        lateness = (
            assess_lateness(day.check_in_at, start_time, grace_minutes)
            if day.present
            else LatenessInfo(is_late=False, late_minutes=0)
        )
        previous = comparison_hours.get(day.entry.user_id, 0.0)
        metrics.append(
            EmployeeDayMetric(
                user_id=day.entry.user_id,
                name=day.entry.name,
                role=day.entry.role,
                branch_name=day.entry.branch_name,
                check_in_time=_clock(day.check_in_at),
                check_out_time=_clock(day.check_out_at),
                hours_worked=round2(day.hours),
                is_late=lateness.is_late,
                late_minutes=lateness.late_minutes,
                status=employee_status(day, lateness.is_late),
                target_hours=day.entry.target_hours,
                target_met=target_met(day.hours, day.entry.target_hours),
                comparison_hours=round2(previous),
                comparison_text=comparison_text(day.hours, previous, label),
            )
        )
    metrics.sort(key=lambda m: (-m.hours_worked, m.is_late))
    return metrics


def evening_lateness_summary(metrics: Sequence[EmployeeDayMetric]) -> LatenessSummary:
    late = [m for m in metrics if m.is_late]
    total_minutes = sum(m.late_minutes for m in late)
    worst = max(late, key=lambda m: m.late_minutes, default=None)
    return LatenessSummary(
        total_late_employees=len(late),
        total_late_minutes=total_minutes,
        average_late_minutes=round2(total_minutes / len(late)) if late else 0.0,
        worst_late_arrival=WorstLateArrival(employee=worst.name, minutes=worst.late_minutes) if worst else None,
        punctuality_trend=punctuality_trend(len(late), len(metrics)),
    )


def punctuality_trend(late_count: int, total: int) -> str:
    late_percentage = late_count / total * 100 if total else 0
    if late_percentage == 0:
        return "excellent - no late arrivals"
    if late_percentage < 10:
        return "good - minimal late arrivals"
    if late_percentage < 25:
        return "concerning - moderate late arrivals"
    return "critical - high rate of late arrivals"


def percent_change(today: float, comparison: float) -> int:
    """변화율(%) — 0 when the comparison value is 0."""
    if comparison <= 0:
        return 0
    return round_half_up((today - comparison) / comparison * 100)


def punctuality_change(today_late: int, comparison_late: int, comparison_count: int) -> int:
    """지각 개선율 — Positive when fewer people were late than on the comparison day."""
    if comparison_count <= 0:
        return 0
    return round_half_up((comparison_late - today_late) / comparison_count * 100)


def performance_trend(attendance_change: int, hours_change: float) -> str:
    if attendance_change > 5 and hours_change > 0:
        return "improving"
    if attendance_change < -5 or hours_change < -2:
        return "declining"
    return "stable"


def overall_performance(trend: str) -> str:
    if trend == "improving":
        return "Team performance is trending upward with good attendance and productivity"
    if trend == "declining":
        return "Performance needs attention - consider team check-ins and support"
    return "Team performance is stable and consistent"


def punctuality_rate(metrics: Sequence[EmployeeDayMetric]) -> int:
    if not metrics:
        return 100
    late = sum(1 for m in metrics if m.is_late)
    return round_half_up((len(metrics) - late) / len(metrics) * 100)


def top_performers(metrics: Sequence[EmployeeDayMetric], limit: int = 3) -> list[TopPerformer]:
    ranked = sorted((m for m in metrics if m.hours_worked > 0), key=lambda m: m.hours_worked, reverse=True)
    return [
        TopPerformer(
            name=m.name,
            hours_worked=m.hours_worked,
            achievement="Full day completed" if m.hours_worked >= FULL_DAY_HOURS else f"{format_hours(m.hours_worked)}h worked",
        )
        for m in ranked[:limit]
    ]


def improvement_areas(metrics: Sequence[EmployeeDayMetric]) -> list[ImprovementArea]:
    late = sum(1 for m in metrics if m.is_late)
    if not late:
        return []
    return [ImprovementArea(area="Punctuality", description=f"{late} employees arrived late today", count=late)]


def tomorrow_actions(late_count: int, absent_count: int, average_hours: float) -> list[str]:
    actions: list[str] = []
    if late_count > 0:
        actions.append(f"Follow up with {late_count} employees who arrived late today")
    if absent_count > 0:
        actions.append(f"Check in with {absent_count} absent employees to ensure they're okay")
    if average_hours < 6:
        actions.append("Review scheduling and workload distribution to improve productivity")
    if not actions:
        actions.append("Continue maintaining excellent team performance and punctuality")
    return actions
