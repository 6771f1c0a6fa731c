"""알림 서비스 테스트.

Notification sink tests — event log, body rendering and fire-and-forget email.
"""

import asyncio
import logging

import pytest

from timekeeper.config import settings
from timekeeper.services import notification_service as notification_module
from timekeeper.services.notification_service import (
    EVENT_EVENING_REPORT,
    EVENT_MORNING_REPORT,
    EVENT_OVERTIME_REMINDER,
    NotificationService,
    render_bodies,
)


@pytest.fixture
def smtp_on(monkeypatch):
    monkeypatch.setattr(settings, "SMTP_USER", "user")
    monkeypatch.setattr(settings, "SMTP_PASSWORD", "secret")
    monkeypatch.setattr(settings, "SMTP_FROM_EMAIL", "noreply@test.com")


async def _drain(service: NotificationService) -> None:
    await asyncio.gather(*list(service._pending), return_exceptions=True)
    await asyncio.sleep(0)


class TestEventLog:
    """이벤트 기록 테스트."""

    def test_emit_records_event_without_smtp(self):
        """SMTP 미설정 시 기록만 하고 발송하지 않음."""
        service = NotificationService()
        service.emit(EVENT_OVERTIME_REMINDER, {"employee_name": "Alice"}, ["alice@test.com"])
        events = service.recent_events()
        assert len(events) == 1
        assert events[0]["recipients"] == ["alice@test.com"]
        assert not service._pending

    def test_filter_by_kind_and_bound(self):
        service = NotificationService(max_events=2)
        service.emit(EVENT_MORNING_REPORT, {})
        service.emit(EVENT_EVENING_REPORT, {})
        service.emit(EVENT_EVENING_REPORT, {})
        assert len(service.recent_events()) == 2
        assert service.recent_events(EVENT_MORNING_REPORT) == []
        service.clear()
        assert service.recent_events() == []


class TestRendering:
    def test_report_body_lists_insights(self):
        payload = {
            "organization_name": "Test Corp",
            "report_date": "2025-03-12",
            "summary": {"total_employees": 3, "present_count": 2, "attendance_rate": 66.7},
            "insights": ["Good attendance"],
            "recommendations": ["Send <reminders>"],
        }
        text, html = render_bodies(EVENT_MORNING_REPORT, payload)
        assert "Attendance rate: 66.7%" in text
        assert "- Good attendance" in text
        assert "&lt;reminders&gt;" in html

    def test_evening_body_lists_improvement_areas(self):
        payload = {
            "organization_name": "Test Corp",
            "report_date": "2025-03-12",
            "summary": {},
            "comparison_label": "yesterday",
            "recommendations": ["Follow up with 2 employees who arrived late today"],
            "improvement_areas": [
                {"area": "Punctuality", "description": "2 employees arrived late today", "count": 2},
            ],
        }
        text, html = render_bodies(EVENT_EVENING_REPORT, payload)
        assert "Recommendations:\n- Follow up with 2 employees who arrived late today" in text
        assert "Improvement areas:\n- Punctuality: 2 employees arrived late today" in text
        assert "<h3>Improvement areas</h3>" in html

    def test_reminder_body(self):
        text, _ = render_bodies(EVENT_OVERTIME_REMINDER, {"employee_name": "Alice", "overtime_duration": "12 minutes"})
        assert text.startswith("Hi Alice,")
        assert "12 minutes" in text


class TestEmailDelivery:
    """이메일 발송 테스트."""

    async def test_email_scheduled_when_configured(self, smtp_on, monkeypatch):
        sent: list[tuple] = []

        async def fake_send(to, subject, html, text=None):
            sent.append((to, subject))

        monkeypatch.setattr(notification_module, "send_email", fake_send)
        service = NotificationService()
        service.emit(EVENT_OVERTIME_REMINDER, {"overtime_duration": "15 minutes"}, ["alice@test.com"])
        await _drain(service)

        assert sent == [(["alice@test.com"], "Reminder: you are still checked in (15 minutes past close)")]
        assert not service._pending

    async def test_no_recipients_no_email(self, smtp_on, monkeypatch):
        async def fake_send(*args, **kwargs):
            raise AssertionError("should not send")

        monkeypatch.setattr(notification_module, "send_email", fake_send)
        service = NotificationService()
        service.emit(EVENT_MORNING_REPORT, {})
        assert not service._pending

    async def test_delivery_failure_is_logged(self, smtp_on, monkeypatch, caplog):
        """발송 실패는 emit 호출자에게 전파되지 않고 로그로 남음."""
        async def failing_send(*args, **kwargs):
            raise ConnectionError("smtp down")

        monkeypatch.setattr(notification_module, "send_email", failing_send)
        service = NotificationService()
        with caplog.at_level(logging.ERROR, logger=notification_module.__name__):
            service.emit(EVENT_EVENING_REPORT, {}, ["owner@test.com"])
            await _drain(service)

        assert "delivery failed" in caplog.text
        assert len(service.recent_events()) == 1
