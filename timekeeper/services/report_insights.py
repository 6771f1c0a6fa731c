"""리포트 인사이트/권장 사항 규칙.

Deterministic rule lists that turn computed report figures into the
human-readable insight and recommendation lines of the morning and evening
reports. Every degenerate input (empty roster, nobody present, no completed
shifts) has its own message.
"""

from typing import Sequence

from timekeeper.schemas.report import EmployeeCategories, EmployeeDayMetric, PunctualityBreakdown, TargetPerformance
from timekeeper.services.report_aggregation import format_hours
from timekeeper.utils.time_window import round_half_up


def _rate(value: float) -> str:
    return f"{value:.1f}".rstrip("0").rstrip(".")


# === 오전 리포트 (Morning) ===

def morning_insights(
    attendance_rate: float,
    punctuality: PunctualityBreakdown,
    present_count: int,
    total_employees: int,
) -> list[str]:
    insights: list[str] = []

    if total_employees == 0:
        return [
            "No employees are registered in the system for this organization.",
            "System setup is required to begin tracking attendance and performance metrics.",
        ]

    if present_count == 0:
        return [
            "CRITICAL: No employees have checked in yet today. This requires immediate attention and follow-up.",
            "Potential causes: system issues, holiday schedules, communication gaps, or emergency situations.",
            "Immediate action required: Contact all team members to ensure safety and clarify work arrangements.",
            "Consider checking attendance system functionality and recent organizational communications.",
        ]

    context = "team" if total_employees > 1 else "employee"
    ratio = f"{present_count}/{total_employees} {context} present ({_rate(attendance_rate)}%)"
    if attendance_rate >= 95:
        insights.append(f"Exceptional attendance: {ratio} - outstanding commitment!")
    elif attendance_rate >= 85:
        insights.append(f"Strong attendance: {ratio} - excellent performance with minor room for improvement.")
    elif attendance_rate >= 70:
        insights.append(
            f"Good attendance: {ratio} - solid foundation with opportunities to enhance team engagement."
        )
    elif attendance_rate >= 50:
        insights.append(
            f"Moderate attendance: {ratio} - significant opportunity for improvement through targeted support."
        )
    elif attendance_rate > 0:
        insights.append(
            f"Low attendance: Only {ratio} - requires immediate intervention and comprehensive strategy."
        )

    late = len(punctuality.late)
    very_late = len(punctuality.very_late)
    total_late = late + very_late
    on_time_total = len(punctuality.early) + len(punctuality.on_time)

    if total_late == 0:
        insights.append(
            f"Perfect punctuality: All {present_count} present employees arrived on time or early"
            " - exceptional team discipline!"
        )
    elif very_late > 0:
        if late > 0:
            insights.append(
                f"URGENT: {very_late} employees arrived very late (30+ minutes) and {late} others were late."
                f" Total late: {total_late}/{present_count} present employees."
            )
        else:
            insights.append(
                f"URGENT: {very_late} employees arrived very late (30+ minutes). This represents"
                f" {round_half_up(very_late / present_count * 100)}% of present employees requiring immediate attention."
            )
    else:
        insights.append(
            f"{late} employees arrived late today ({late}/{present_count} present employees)"
            f" with an average delay of {format_hours(punctuality.average_late_minutes)} minutes."
        )

    early = len(punctuality.early)
    if early > 0:
        insights.append(
            f"Outstanding dedication: {early} employees arrived early ({early}/{present_count} present employees)"
            " - demonstrating exceptional commitment."
        )

    if punctuality.very_late_percentage > 20 and present_count >= 3:
        insights.append(
            f"CRITICAL ALERT: {punctuality.very_late_percentage}% of present employees were extremely late"
            " - indicates systemic issues requiring immediate management intervention."
        )
    elif punctuality.very_late_percentage > 10 and present_count >= 5:
        insights.append(
            f"ATTENTION: {punctuality.very_late_percentage}% of present employees were extremely late"
            " - monitor for emerging patterns."
        )

    if on_time_total > 0:
        percent = round_half_up(on_time_total / present_count * 100)
        share = f"{percent}% ({on_time_total}/{present_count}) of present employees arrived on time or early"
        if present_count >= 10:
            if percent >= 90:
                insights.append(f"Excellent punctuality: {share} - strong team culture.")
            elif percent >= 75:
                insights.append(f"Good punctuality: {share} - opportunity for improvement.")
            elif percent >= 50:
                insights.append(f"Moderate punctuality: {share} - requires attention.")
            else:
                insights.append(f"Low punctuality: Only {share} - critical issue.")
        elif present_count >= 3:
            verdict = "good performance" if percent >= 80 else "room for improvement"
            insights.append(
                f"Small team punctuality: {on_time_total} out of {present_count} present employees"
                f" arrived on time or early ({percent}%) - {verdict}."
            )
        else:
            noun = "employee" if present_count == 1 else "employees"
            insights.append(f"{on_time_total} out of {present_count} present {noun} arrived on time or early.")

    return insights


def morning_recommendations(punctuality: PunctualityBreakdown, attendance_rate: float) -> list[str]:
    if attendance_rate == 0:
        return [
            "IMMEDIATE ACTION: Contact all team members within 30 minutes to verify safety and work status.",
            "Check attendance system functionality and verify no technical issues are preventing check-ins.",
            "Review today's schedule, holiday calendar, and recent organizational communications.",
            "Prepare contingency plans for business operations if attendance issues persist.",
            "Document incident for analysis and implement preventive measures for future occurrences.",
        ]

    recommendations: list[str] = []
    if punctuality.very_late:
        recommendations.append(
            f"URGENT: Schedule immediate meetings with {len(punctuality.very_late)} employees who were very late"
            " to identify critical barriers."
        )
        recommendations.append(
            "Implement emergency support measures for employees facing significant attendance challenges."
        )

    if punctuality.late:
        recommendations.extend([
            "Schedule one-on-one conversations with late employees to understand barriers and provide targeted support.",
            "Review if start times and expectations are clearly communicated and realistic for all team members.",
            "Consider flexible start time options for employees facing consistent transportation or personal challenges.",
        ])

    if attendance_rate < 80:
        recommendations.extend([
            "Implement proactive wellness check system to identify and address attendance barriers early.",
            "Review organizational policies and support systems to ensure they meet current team needs.",
        ])

    if attendance_rate < 60:
        recommendations.extend([
            "Conduct urgent team meeting to address systemic attendance challenges and gather feedback.",
            "Consider implementing attendance incentive programs or enhanced support services.",
        ])

    if punctuality.late_percentage > 25:
        recommendations.extend([
            "Evaluate and adjust start time expectations based on realistic commute and preparation needs.",
            "Implement attendance coaching program for employees struggling with punctuality.",
        ])

    if punctuality.early:
        recommendations.append(
            f"Recognize and appreciate the {len(punctuality.early)} employees who demonstrated exceptional"
            " commitment by arriving early."
        )

    if punctuality.on_time:
        recommendations.append(
            f"Acknowledge the {len(punctuality.on_time)} punctual team members for their consistent reliability"
            " and professionalism."
        )

    if punctuality.on_time_percentage > 80 and attendance_rate > 85:
        recommendations.extend([
            "Continue current successful practices and consider documenting what's working well for future reference.",
            "Use today's positive performance as a benchmark for maintaining excellence.",
        ])

    if not recommendations:
        recommendations.extend([
            "Maintain current excellent attendance practices and continue supporting team success.",
            "Consider sharing today's positive results with the team to reinforce good habits.",
        ])
    return recommendations


def enhanced_morning_insights(
    attendance_rate: float,
    punctuality: PunctualityBreakdown,
    present_count: int,
    total_employees: int,
    target: TargetPerformance,
    categories: EmployeeCategories,
) -> list[str]:
    insights = morning_insights(attendance_rate, punctuality, present_count, total_employees)

    if target.expected_daily_hours > 0:
        insights.append(
            f"Target Analysis: {format_hours(target.actual_total_hours)}h worked of"
            f" {format_hours(target.expected_daily_hours)}h expected daily target"
            f" ({format_hours(target.target_achievement_rate)}% achieved)"
        )
        projected = format_hours(target.projected_end_of_day_hours or 0)
        if target.on_track:
            insights.append(
                f"Performance Outlook: Team is projected to achieve {projected}h by day end"
                " - ON TRACK to meet targets!"
            )
        else:
            insights.append(f"Performance Alert: Projected {projected}h by day end - {target.hours_gap_analysis}")

    if categories.currently_working:
        insights.append(
            f"Currently Active: {len(categories.currently_working)} employees are actively working"
            " and accumulating hours"
        )
    if categories.completed:
        insights.append(
            f"Completed Shifts: {len(categories.completed)} employees have already completed their work for today"
        )
    return insights


def enhanced_morning_recommendations(
    punctuality: PunctualityBreakdown,
    attendance_rate: float,
    target: TargetPerformance,
    categories: EmployeeCategories,
) -> list[str]:
    recommendations = morning_recommendations(punctuality, attendance_rate)

    if not target.on_track and target.expected_daily_hours > 0:
        recommendations.append(
            f"Target Recovery: Team needs {target.hours_gap_analysis}"
            " - consider productivity support or schedule adjustments"
        )
        if categories.absent:
            recommendations.append(
                f"Urgent Contact: Follow up with {len(categories.absent)} absent employees"
                " to recover lost productivity hours"
            )

    if target.on_track and target.target_achievement_rate > 100:
        recommendations.append(
            "Excellence Opportunity: Team is exceeding targets"
            " - consider recognizing high performers and documenting best practices"
        )

    if categories.currently_working:
        recommendations.append(
            f"Monitor Progress: Check in with {len(categories.currently_working)} active employees around midday"
            " to ensure they stay on track"
        )
    return recommendations


# === 저녁 리포트 (Evening) ===

def evening_insights(
    metrics: Sequence[EmployeeDayMetric],
    completed_shifts: int,
    average_hours: float,
) -> list[str]:
    if not metrics:
        return [
            "No employee data available for this organization.",
            "System setup may be required to begin tracking employee performance metrics.",
        ]

    insights: list[str] = []
    total = len(metrics)
    checked_in = sum(1 for m in metrics if m.check_in_time)
    late_metrics = [m for m in metrics if m.is_late]
    high_performers = sum(1 for m in metrics if m.hours_worked > max(average_hours + 1, 6))
    no_check_out = sum(1 for m in metrics if m.check_in_time and not m.check_out_time)
    no_work = sum(1 for m in metrics if not m.check_in_time and m.hours_worked == 0)

    if checked_in == 0:
        return [
            f"CRITICAL: No employees checked in today out of {total} registered employees.",
            "This requires immediate investigation - potential system issues, holiday schedules,"
            " or emergency situations.",
            "Immediate action: Verify employee safety and check attendance system functionality.",
        ]

    if completed_shifts == 0:
        insights.append(
            f"{checked_in}/{total} employees checked in today, but none have completed their shifts yet."
        )
        insights.append("All checked-in employees are still working or haven't checked out properly.")
    else:
        completion = round_half_up(completed_shifts / checked_in * 100)
        if completion == 100:
            insights.append(
                f"Excellent completion: All {completed_shifts} employees who checked in today completed their shifts."
            )
        else:
            insights.append(
                f"{completed_shifts}/{checked_in} employees completed their shifts ({completion}% completion rate)."
            )

    average = format_hours(average_hours)
    if average_hours > 0:
        if completed_shifts >= 3:
            if average_hours >= 8:
                insights.append(
                    f"Strong productivity: Average working time of {average} hours indicates full engagement"
                    f" across {completed_shifts} completed shifts."
                )
            elif average_hours >= 6:
                insights.append(
                    f"Moderate productivity: Average working time of {average} hours shows good effort"
                    f" across {completed_shifts} completed shifts."
                )
            elif average_hours >= 4:
                insights.append(
                    f"Limited productivity: Average working time of {average} hours indicates potential challenges"
                    f" across {completed_shifts} completed shifts."
                )
            else:
                insights.append(
                    f"Low productivity: Average working time of only {average} hours requires investigation"
                    f" across {completed_shifts} completed shifts."
                )
        elif completed_shifts > 0:
            plural = "" if completed_shifts == 1 else "s"
            insights.append(
                f"Limited data: {completed_shifts} completed shift{plural} with average working time of {average} hours."
            )
    elif completed_shifts == 0:
        insights.append(
            "No completed shifts yet - all employees are either still working or haven't properly checked out."
        )

    if late_metrics:
        late = len(late_metrics)
        late_rate = round_half_up(late / checked_in * 100)
        avg_late = round_half_up(sum(m.late_minutes for m in late_metrics) / late)
        detail = f"{late}/{checked_in} employees arrived late ({late_rate}%) with average delay of {avg_late} minutes"
        if late_rate >= 50:
            insights.append(f"ATTENTION: {detail} - significant punctuality issue.")
        elif late_rate >= 25:
            insights.append(f"Moderate concern: {detail}.")
        else:
            insights.append(f"Minor lateness: {detail}.")
    else:
        insights.append(f"Excellent punctuality: All {checked_in} employees who checked in arrived on time or early.")

    if high_performers:
        rate = round_half_up(high_performers / max(completed_shifts, checked_in) * 100)
        if rate >= 50:
            insights.append(
                f"Outstanding dedication: {high_performers} employees worked significantly above average hours"
                f" ({rate}% of active employees)."
            )
        else:
            insights.append(
                f"Strong performers: {high_performers} employees worked above average hours,"
                " showing exceptional commitment."
            )

    if no_check_out:
        rate = round_half_up(no_check_out / checked_in * 100)
        if rate >= 75:
            insights.append(f"High engagement: {no_check_out}/{checked_in} employees are still actively working ({rate}%).")
        elif rate >= 25:
            insights.append(f"Continued activity: {no_check_out}/{checked_in} employees haven't checked out yet ({rate}%).")
        else:
            insights.append(
                f"{no_check_out} employees haven't checked out yet - may be working late or forgot to check out."
            )

    if no_work:
        rate = round_half_up(no_work / total * 100)
        if rate >= 50:
            insights.append(
                f"High absence: {no_work}/{total} employees had no activity today ({rate}%) - requires investigation."
            )
        elif rate >= 25:
            insights.append(f"Notable absence: {no_work}/{total} employees had no activity today ({rate}%).")
        elif no_work == 1:
            insights.append("One employee had no activity today - may need follow-up.")
        else:
            insights.append(f"{no_work} employees had no activity today.")

    zero_hours = sum(1 for m in metrics if m.hours_worked == 0)
    if 0 < zero_hours < total:
        insights.append(
            f"{zero_hours} employees recorded no working hours today - may need attention or system check."
        )
    return insights


def enhanced_evening_insights(
    metrics: Sequence[EmployeeDayMetric],
    completed_shifts: int,
    average_hours: float,
    target: TargetPerformance,
    categories: EmployeeCategories,
) -> list[str]:
    insights = evening_insights(metrics, completed_shifts, average_hours)

    if target.expected_daily_hours > 0:
        insights.append(
            f"Target Performance: {format_hours(target.actual_total_hours)}h worked of"
            f" {format_hours(target.expected_daily_hours)}h target ({format_hours(target.target_achievement_rate)}%"
            f" achieved) - {target.team_efficiency_rating} efficiency"
        )
        if target.individual_targets_met > 0:
            insights.append(
                f"Individual Success: {target.individual_targets_met} employees met their personal targets"
            )
        if target.individual_targets_missed > 0:
            insights.append(
                f"Growth Opportunity: {target.individual_targets_missed} employees need support to reach their targets"
            )
        if target.hours_over_target > 0:
            insights.append(
                f"Exceeded Expectations: Team worked {format_hours(target.hours_over_target)}h above target"
                " - outstanding commitment!"
            )
        elif target.hours_under_target > 0:
            insights.append(
                f"Recovery Needed: Team is {format_hours(target.hours_under_target)}h behind target"
                " - focus on productivity improvements"
            )

    if categories.currently_working:
        insights.append(
            f"Still Active: {len(categories.currently_working)} employees are still working"
            " and contributing to daily targets"
        )
    if categories.overtime:
        insights.append(
            f"Overtime Champions: {len(categories.overtime)} employees worked overtime, showing exceptional dedication"
        )
    return insights
