"""리포트 인사이트 규칙 테스트.

Insight and recommendation rule tests — every degenerate input gets its own
message. Pure functions, no database.
"""

from uuid import uuid4

from timekeeper.schemas.report import EmployeeDayMetric, PunctualityBreakdown, PunctualityBucket, PunctualityEntry
from timekeeper.services.report_insights import evening_insights, morning_insights, morning_recommendations


def _on_time(name: str) -> PunctualityEntry:
    return PunctualityEntry(user_id=uuid4(), name=name, check_in_time="08:58", bucket=PunctualityBucket.ON_TIME)


def _metric(
    name: str,
    *,
    check_in: str | None = "09:00",
    check_out: str | None = None,
    hours: float = 0.0,
    late_minutes: int = 0,
) -> EmployeeDayMetric:
    return EmployeeDayMetric(
        user_id=uuid4(),
        name=name,
        role="employee",
        check_in_time=check_in,
        check_out_time=check_out,
        hours_worked=hours,
        is_late=late_minutes > 0,
        late_minutes=late_minutes,
        status="Currently Working" if check_in else "Absent",
        target_hours=8.0,
        target_met=False,
        comparison_hours=0.0,
        comparison_text="",
    )


class TestMorningInsights:
    """오전 인사이트 테스트."""

    def test_nobody_present(self):
        insights = morning_insights(0.0, PunctualityBreakdown(), 0, 3)
        assert insights[0].startswith("CRITICAL: No employees have checked in yet today")
        assert len(insights) == 4

    def test_perfect_punctuality(self):
        punctuality = PunctualityBreakdown(on_time=[_on_time("Alice"), _on_time("Bob")], on_time_percentage=100)
        insights = morning_insights(100.0, punctuality, 2, 2)
        assert insights[0] == "Exceptional attendance: 2/2 team present (100%) - outstanding commitment!"
        assert (
            "Perfect punctuality: All 2 present employees arrived on time or early - exceptional team discipline!"
            in insights
        )

    def test_zero_attendance_recommendations(self):
        """출근률 0%는 즉시 조치 권장 사항."""
        recommendations = morning_recommendations(PunctualityBreakdown(), 0)
        assert len(recommendations) == 5
        assert recommendations[0].startswith("IMMEDIATE ACTION")

    def test_quiet_day_recommendations(self):
        recommendations = morning_recommendations(PunctualityBreakdown(), 90.0)
        assert recommendations[0].startswith("Maintain current excellent attendance practices")
        assert not any(r.startswith("IMMEDIATE ACTION") for r in recommendations)


class TestEveningInsights:
    """저녁 인사이트 테스트."""

    def test_no_metrics(self):
        assert evening_insights([], 0, 0.0)[0] == "No employee data available for this organization."

    def test_nobody_checked_in(self):
        metrics = [_metric("Alice", check_in=None), _metric("Bob", check_in=None)]
        insights = evening_insights(metrics, 0, 0.0)
        assert insights[0] == "CRITICAL: No employees checked in today out of 2 registered employees."

    def test_no_completed_shifts(self):
        """출근했지만 아무도 퇴근하지 않음."""
        insights = evening_insights([_metric("Alice", hours=3.0)], 0, 3.0)
        assert insights[0] == "1/1 employees checked in today, but none have completed their shifts yet."
        assert "Excellent punctuality: All 1 employees who checked in arrived on time or early." in insights

    def test_late_arrivals_replace_punctuality_praise(self):
        insights = evening_insights([_metric("Alice", check_out="17:00", hours=7.0, late_minutes=20)], 1, 7.0)
        assert "Excellent completion: All 1 employees who checked in today completed their shifts." in insights
        assert (
            "ATTENTION: 1/1 employees arrived late (100%) with average delay of 20 minutes"
            " - significant punctuality issue." in insights
        )
        assert not any(i.startswith("Excellent punctuality") for i in insights)
