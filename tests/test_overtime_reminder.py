"""초과근무 알림 스캐너 테스트.

Overtime reminder scanner tests. The organization closes at 17:00 and the
evaluation window is 17:10 to 17:15 with the default settings.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tests.conftest import WORK_DAY, add_shift, local_dt, make_user
from timekeeper.models.organization import Organization
from timekeeper.models.user import User
from timekeeper.services.dedup_store import InMemoryDedupStore, overtime_key
from timekeeper.services.notification_service import EVENT_OVERTIME_REMINDER, NotificationService
from timekeeper.services.overtime_reminder_service import OvertimeReminderService, overtime_reminder_service
from timekeeper.utils.exceptions import ConnectivityFailure

SCAN_AT = local_dt(WORK_DAY, 17, 12)


@pytest.fixture
def sink() -> NotificationService:
    return NotificationService()


@pytest.fixture
def store() -> InMemoryDedupStore:
    return InMemoryDedupStore(ttl_seconds=3600)


@pytest.fixture
def scanner(session_factory: async_sessionmaker[AsyncSession], store, sink) -> OvertimeReminderService:
    return OvertimeReminderService(session_factory=session_factory, store=store, sink=sink)


class TestWindow:
    """평가 구간 테스트."""

    def test_in_window_bounds(self, scanner: OvertimeReminderService):
        assert scanner.in_window("17:00", local_dt(WORK_DAY, 17, 10)) is True
        assert scanner.in_window("17:00", local_dt(WORK_DAY, 17, 15)) is True
        assert scanner.in_window("17:00", local_dt(WORK_DAY, 17, 9)) is False
        assert scanner.in_window("17:00", local_dt(WORK_DAY, 17, 16)) is False

    def test_window_past_midnight(self, scanner: OvertimeReminderService):
        """마감 23:55 → 평가 구간 00:05-00:10 (다음 날)."""
        next_day = WORK_DAY + timedelta(days=1)
        assert scanner.in_window("23:55", local_dt(next_day, 0, 5)) is True
        assert scanner.in_window("23:55", local_dt(next_day, 0, 10)) is True
        assert scanner.in_window("23:55", local_dt(next_day, 0, 11)) is False
        assert scanner.in_window("23:55", local_dt(WORK_DAY, 23, 59)) is False


class TestRunScan:
    """스캔 실행 테스트."""

    async def test_reminds_open_shift_once(
        self, db: AsyncSession, org: Organization, employee: User, scanner, sink, store
    ):
        """미퇴근 교대에 1회만 알림."""
        record = await add_shift(db, employee, local_dt(WORK_DAY, 9))
        await db.commit()

        assert await scanner.run_scan(SCAN_AT) == 1
        assert await scanner.run_scan(local_dt(WORK_DAY, 17, 14)) == 0

        events = sink.recent_events(EVENT_OVERTIME_REMINDER)
        assert len(events) == 1
        payload = events[0]["payload"]
        assert events[0]["recipients"] == ["alice@test.com"]
        assert payload["employee_name"] == "Alice Kim"
        assert payload["minutes_overtime"] == 12
        assert payload["overtime_duration"] == "12 minutes"
        assert payload["check_in_time"] == "09:00 AM"
        assert payload["organization_close_time"] == "05:00 PM"
        assert payload["current_time"] == "05:12 PM"
        assert payload["shift_duration"] == "8 hours 12 minutes"
        assert payload["organization_name"] == "Test Corp"
        assert store.has_fired(overtime_key(record.id, WORK_DAY))

    async def test_reminds_after_midnight_for_late_close(self, db: AsyncSession, scanner, sink, store):
        """자정 직전 마감 조직은 다음 날 00시대에 알림."""
        late_shop = Organization(name="Late Shop", open_time="15:00", close_time="23:55")
        db.add(late_shop)
        await db.flush()
        user = await make_user(db, late_shop, "Night Clerk", email="clerk@test.com")
        record = await add_shift(db, user, local_dt(WORK_DAY, 16))
        await db.commit()

        assert await scanner.run_scan(local_dt(WORK_DAY + timedelta(days=1), 0, 7)) == 1

        [event] = sink.recent_events(EVENT_OVERTIME_REMINDER)
        assert event["payload"]["minutes_overtime"] == 12
        assert event["payload"]["organization_close_time"] == "11:55 PM"
        assert event["payload"]["current_time"] == "12:07 AM"
        assert store.has_fired(overtime_key(record.id, WORK_DAY))

    async def test_excludes_closed_and_after_close_shifts(
        self, db: AsyncSession, org: Organization, employee: User, scanner, sink
    ):
        """마감 후 출근 및 퇴근 완료 교대는 제외."""
        late_starter = await make_user(db, org, "Late Starter", email="late@test.com")
        finished = await make_user(db, org, "Done Early", email="done@test.com")
        await add_shift(db, late_starter, local_dt(WORK_DAY, 17, 5))
        await add_shift(db, finished, local_dt(WORK_DAY, 9), local_dt(WORK_DAY, 16), "7h 0m")
        await db.commit()

        assert await scanner.run_scan(SCAN_AT) == 0
        assert sink.recent_events() == []

    async def test_excludes_shift_from_previous_day(
        self, db: AsyncSession, org: Organization, employee: User, scanner
    ):
        await add_shift(db, employee, local_dt(WORK_DAY - timedelta(days=1), 9))
        await db.commit()
        assert await scanner.run_scan(SCAN_AT) == 0

    async def test_outside_window_sends_nothing(
        self, db: AsyncSession, org: Organization, employee: User, scanner, sink
    ):
        await add_shift(db, employee, local_dt(WORK_DAY, 9))
        await db.commit()

        assert await scanner.run_scan(local_dt(WORK_DAY, 17, 30)) == 0
        assert await scanner.run_scan(local_dt(WORK_DAY, 16, 50)) == 0
        assert sink.recent_events() == []

    async def test_missing_email_is_skipped_without_marking(
        self, db: AsyncSession, org: Organization, scanner, sink, store
    ):
        """이메일 없는 직원은 건너뛰고 키를 기록하지 않음."""
        nameless = await make_user(db, org, "No Mail")
        record = await add_shift(db, nameless, local_dt(WORK_DAY, 9))
        await db.commit()

        assert await scanner.run_scan(SCAN_AT) == 0
        assert sink.recent_events() == []
        assert store.has_fired(overtime_key(record.id, WORK_DAY)) is False

    async def test_organization_without_hours_is_skipped(self, db: AsyncSession, scanner, sink):
        open_all_day = Organization(name="No Hours", open_time="09:00")
        db.add(open_all_day)
        await db.flush()
        user = await make_user(db, open_all_day, "Night Owl", email="owl@test.com")
        await add_shift(db, user, local_dt(WORK_DAY, 9))
        await db.commit()

        assert await scanner.run_scan(SCAN_AT) == 0

    async def test_one_failing_organization_does_not_stop_others(
        self, db: AsyncSession, org: Organization, employee: User, scanner, sink
    ):
        """조직 하나의 오류가 다른 조직 처리를 막지 않음."""
        broken = Organization(name="Broken Corp", open_time="09:00", close_time="5pm")
        db.add(broken)
        await add_shift(db, employee, local_dt(WORK_DAY, 9))
        await db.commit()

        assert await scanner.run_scan(SCAN_AT) == 1

    async def test_overlapping_tick_is_skipped(
        self, db: AsyncSession, org: Organization, employee: User, scanner, sink
    ):
        """이전 스캔 실행 중이면 이번 틱은 건너뜀."""
        await add_shift(db, employee, local_dt(WORK_DAY, 9))
        await db.commit()

        async with scanner._lock:
            assert await scanner.run_scan(SCAN_AT) == 0
        assert sink.recent_events() == []

    async def test_connectivity_failure_aborts_tick(self, store, sink):
        bad_engine = create_async_engine("sqlite+aiosqlite:////nonexistent/dir/timekeeper.db")
        scanner = OvertimeReminderService(
            session_factory=async_sessionmaker(bad_engine, class_=AsyncSession), store=store, sink=sink
        )
        try:
            with pytest.raises(ConnectivityFailure):
                await scanner.run_scan(SCAN_AT)
        finally:
            await bad_engine.dispose()

    async def test_reset_daily_allows_new_reminder(
        self, db: AsyncSession, org: Organization, employee: User, scanner, sink
    ):
        await add_shift(db, employee, local_dt(WORK_DAY, 9))
        await db.commit()

        assert await scanner.run_scan(SCAN_AT) == 1
        scanner.reset_daily()
        assert await scanner.run_scan(SCAN_AT) == 1
        assert len(sink.recent_events()) == 2


class TestTriggerCheck:
    """수동 점검 테스트."""

    async def test_trigger_check_result(self, scanner):
        result = await scanner.trigger_check(SCAN_AT)
        assert result == {"message": "Overtime check completed", "processed": 0}

    async def test_trigger_check_api(self, client: AsyncClient, session_factory, monkeypatch):
        monkeypatch.setattr(overtime_reminder_service, "_session_factory", session_factory)
        res = await client.post("/api/v1/overtime/check")
        assert res.status_code == 200
        assert res.json() == {"message": "Overtime check completed", "processed": 0}
