"""알림 서비스 — 초과근무 알림과 정기 리포트 발송.

Notification Service — Fire-and-forget notification sink.

Every event is recorded in a bounded in-memory log. When SMTP is configured, an
email is scheduled on the running loop and not awaited; delivery failures are
logged from the task's done callback.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime, timezone
from html import escape
from typing import Any, Sequence

from timekeeper.config import settings
from timekeeper.utils.email import send_email

logger = logging.getLogger(__name__)

EVENT_OVERTIME_REMINDER = "overtime_reminder"
EVENT_MORNING_REPORT = "morning_report"
EVENT_EVENING_REPORT = "evening_report"

RECENT_EVENT_LIMIT = 200


def _summary_lines(kind: str, payload: dict[str, Any]) -> list[str]:
    """이벤트 종류별 본문 요약 줄 — Headline lines for the email body."""
    if kind == EVENT_OVERTIME_REMINDER:
        return [
            f"Hi {payload.get('employee_name')},",
            f"You are still checked in at {payload.get('organization_name')}.",
            f"Check-in: {payload.get('check_in_time')}",
            f"Organization close time: {payload.get('organization_close_time')}",
            f"Current time: {payload.get('current_time')}",
            f"Overtime so far: {payload.get('overtime_duration')}",
            f"Shift so far: {payload.get('shift_duration')}",
            "Please remember to check out when you finish.",
        ]

    summary = payload.get("summary") or {}
    lines = [
        f"{payload.get('organization_name')} - {payload.get('report_date')}",
        f"Employees: {summary.get('total_employees', 0)}",
        f"Present: {summary.get('present_count', 0)}",
        f"Absent: {summary.get('absent_count', 0)}",
        f"Attendance rate: {summary.get('attendance_rate', 0)}%",
        f"Hours worked: {summary.get('total_actual_hours', 0)}",
    ]
    if kind == EVENT_EVENING_REPORT:
        lines.append(f"Compared with {payload.get('comparison_label')}: {payload.get('overall_performance')}")
    return lines


def _subject(kind: str, payload: dict[str, Any]) -> str:
    if kind == EVENT_OVERTIME_REMINDER:
        return f"Reminder: you are still checked in ({payload.get('overtime_duration')} past close)"
    label = "Morning Attendance Report" if kind == EVENT_MORNING_REPORT else "Evening Attendance Report"
    return f"{label} - {payload.get('organization_name')} ({payload.get('report_date')})"


def render_bodies(kind: str, payload: dict[str, Any]) -> tuple[str, str]:
    """플레인텍스트/HTML 본문 생성 — Returns (text, html)."""
    lines = _summary_lines(kind, payload)
    insights = list(payload.get("insights") or [])
    recommendations = list(payload.get("recommendations") or [])
    improvement_areas = [
        f"{area.get('area')}: {area.get('description')}" for area in payload.get("improvement_areas") or []
    ]

    text_parts = list(lines)
    html_parts = [f"<p>{escape(str(line))}</p>" for line in lines]
    sections = (
        ("Insights", insights),
        ("Recommendations", recommendations),
        ("Improvement areas", improvement_areas),
    )
    for title, items in sections:
        if not items:
            continue
        text_parts.append("")
        text_parts.append(f"{title}:")
        text_parts.extend(f"- {item}" for item in items)
        html_parts.append(f"<h3>{title}</h3><ul>")
        html_parts.extend(f"<li>{escape(str(item))}</li>" for item in items)
        html_parts.append("</ul>")
    return "\n".join(text_parts), "\n".join(html_parts)


class NotificationService:
    """알림 싱크 서비스.

    Notification sink: ``emit(kind, payload, recipients)``.
    """

    def __init__(self, max_events: int = RECENT_EVENT_LIMIT) -> None:
        self._events: deque[dict[str, Any]] = deque(maxlen=max_events)
        self._pending: set[asyncio.Task] = set()

    def emit(self, kind: str, payload: dict[str, Any], recipients: Sequence[str] = ()) -> None:
        """알림 이벤트를 기록하고 이메일 발송을 예약합니다.

        Record the event and, when SMTP is configured and recipients exist,
        schedule email delivery without awaiting it.

        Args:
            kind: 이벤트 종류 (overtime_reminder | morning_report | evening_report)
            payload: JSON 직렬화 가능한 페이로드 (Plain-data payload)
            recipients: 수신자 이메일 목록 (Recipient emails)
        """
        event = {
            "kind": kind,
            "payload": payload,
            "recipients": list(recipients),
            "emitted_at": datetime.now(timezone.utc).isoformat(),
        }
        self._events.append(event)
        logger.info("Notification emitted: %s to %d recipient(s)", kind, len(event["recipients"]))

        if not settings.smtp_enabled or not event["recipients"]:
            return

        text, html = render_bodies(kind, payload)
        task = asyncio.create_task(send_email(event["recipients"], _subject(kind, payload), html, text))
        self._pending.add(task)
        task.add_done_callback(self._on_delivery_done)

    def _on_delivery_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Notification email delivery failed: %s", exc, exc_info=exc)

    def recent_events(self, kind: str | None = None) -> list[dict[str, Any]]:
        """최근 이벤트 (오래된 순) — Most recent events, oldest first."""
        if kind is None:
            return list(self._events)
        return [event for event in self._events if event["kind"] == kind]

    def clear(self) -> None:
        self._events.clear()


# 싱글턴 인스턴스: Singleton instance
notification_service: NotificationService = NotificationService()
