"""초과근무 알림 서비스 — 마감 후에도 출근 중인 직원에게 알림.

Overtime Reminder Service — Periodic scan for shifts still open after closing.

Per tick:
    1. ``SELECT 1`` 연결 확인 (connectivity check; failure aborts the tick)
    2. 영업 시간이 설정된 조직만 처리 (organizations with open/close times)
    3. 마감 + 10분 ~ 마감 + 10분 + 주기 구간에서만 실행 (evaluation window)
    4. 마감 전에 시작된 미퇴근 교대마다 1일 1회 알림 (one reminder per shift per day)
"""

import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timekeeper.config import settings
from timekeeper.database import async_session, ping
from timekeeper.models.attendance import AttendanceRecord
from timekeeper.models.organization import Organization
from timekeeper.repositories.attendance_repository import attendance_repository
from timekeeper.repositories.organization_repository import organization_repository
from timekeeper.services.dedup_store import DedupStore, dedup_store, overtime_key
from timekeeper.services.notification_service import (
    EVENT_OVERTIME_REMINDER,
    NotificationService,
    notification_service,
)
from timekeeper.utils.clock import at_local_minutes, ensure_utc, local_day, now_utc, start_of_local_day
from timekeeper.utils.exceptions import ConnectivityFailure, DataAccessFailure, InvalidTimeFormat
from timekeeper.utils.time_window import (
    format_clock_12h,
    format_duration_words,
    minutes_of_day,
    time_to_minutes,
)

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


class OvertimeReminderService:
    """초과근무 알림 스캐너.

    Collaborators are injectable so tests can pass their own session factory,
    dedup store and sink.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session,
        store: DedupStore = dedup_store,
        sink: NotificationService = notification_service,
    ) -> None:
        self._session_factory = session_factory
        self._store = store
        self._sink = sink
        self._lock = asyncio.Lock()

    @property
    def threshold_minutes(self) -> int:
        return settings.OVERTIME_THRESHOLD_MINUTES

    @property
    def interval_minutes(self) -> int:
        return settings.OVERTIME_SCAN_INTERVAL_MINUTES

    def in_window(self, close_time: str, now: datetime) -> bool:
        """평가 구간 여부 — ``close + threshold <= now <= close + threshold + interval`` (local).

        Minutes are compared modulo one day, so a window that runs past local
        midnight still matches.
        """
        window_start = time_to_minutes(close_time) + self.threshold_minutes
        offset = (minutes_of_day(now) - window_start) % MINUTES_PER_DAY
        return offset <= self.interval_minutes

    async def run_scan(self, now: datetime | None = None) -> int:
        """스캔 1회 실행 — Returns the number of reminders emitted.

        A tick that starts while another is still running is skipped.

        Raises:
            ConnectivityFailure: DB 연결 확인 실패 (connectivity check failed)
        """
        if self._lock.locked():
            logger.info("Overtime scan still running, skipping this tick")
            return 0

        async with self._lock:
            now = ensure_utc(now) if now is not None else now_utc()
            try:
                await ping(self._session_factory)
            except (SQLAlchemyError, OSError) as exc:
                raise ConnectivityFailure(f"Overtime scan aborted: {exc}") from exc

            async with self._session_factory() as db:
                organizations = await organization_repository.list_with_hours(db)

            processed = 0
            for organization in organizations:
                try:
                    processed += await self._process_organization(organization, now)
                except (DataAccessFailure, SQLAlchemyError, InvalidTimeFormat) as exc:
                    logger.error("Overtime scan failed for org %s: %s", organization.id, exc)
            if processed:
                logger.info("Overtime scan sent %d reminder(s)", processed)
            return processed

    async def _process_organization(self, organization: Organization, now: datetime) -> int:
        if not self.in_window(organization.close_time, now):
            return 0

        day = local_day(now)
        close_minutes = time_to_minutes(organization.close_time)
        close_today = at_local_minutes(day, close_minutes)
        if close_today > now:
            # 자정 이후 구간: the window belongs to yesterday's close
            day -= timedelta(days=1)
            close_today = at_local_minutes(day, close_minutes)

        try:
            async with self._session_factory() as db:
                rows = await attendance_repository.find_open_shifts_started_between(
                    db, organization.id, start_of_local_day(day), close_today,
                )
        except SQLAlchemyError as exc:
            raise DataAccessFailure(f"Could not load open shifts: {exc}") from exc

        sent = 0
        for record, full_name, email in rows:
            try:
                if self._remind(organization, record, full_name, email, close_minutes, close_today, day, now):
                    sent += 1
            except Exception:
                logger.exception("Overtime reminder failed for record %s", record.id)
        return sent

    def _remind(
        self,
        organization: Organization,
        record: AttendanceRecord,
        full_name: str,
        email: str | None,
        close_minutes: int,
        close_today: datetime,
        day: date,
        now: datetime,
    ) -> bool:
        overtime_minutes = int((now - close_today).total_seconds() // 60)
        if overtime_minutes < self.threshold_minutes:
            return False

        key = overtime_key(record.id, day)
        if self._store.has_fired(key):
            return False

        if not email or not full_name:
            logger.warning("Missing name or email for record %s, skipping reminder", record.id)
            return False

        check_in_at = ensure_utc(record.check_in_at)
        shift_minutes = int((now - check_in_at).total_seconds() // 60)
        payload: dict[str, Any] = {
            "employee_name": full_name,
            "employee_email": email,
            "check_in_time": format_clock_12h(minutes_of_day(check_in_at)),
            "organization_close_time": format_clock_12h(close_minutes),
            "current_time": format_clock_12h(minutes_of_day(now)),
            "minutes_overtime": overtime_minutes,
            "overtime_duration": format_duration_words(overtime_minutes),
            "shift_duration": format_duration_words(shift_minutes),
            "organization_name": organization.name,
        }
        self._sink.emit(EVENT_OVERTIME_REMINDER, payload, [email])
        self._store.mark_fired(key)
        logger.info("Overtime reminder sent to %s (%d minutes overtime)", full_name, overtime_minutes)
        return True

    async def trigger_check(self, now: datetime | None = None) -> dict[str, Any]:
        """수동 실행 — Run one scan now and report how many reminders went out."""
        processed = await self.run_scan(now)
        return {"message": "Overtime check completed", "processed": processed}

    def reset_daily(self) -> None:
        """자정 초기화 — Forget fired reminders when the local date changes."""
        self._store.clear()
        logger.info("Overtime reminder dedup store cleared")


# 싱글턴 인스턴스: Singleton instance
overtime_reminder_service: OvertimeReminderService = OvertimeReminderService()
