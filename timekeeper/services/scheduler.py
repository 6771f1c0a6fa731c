"""폴링 스케줄러 — 앱 수명주기 안에서 도는 asyncio 주기 작업.

Polling scheduler. Each ``PollingJob`` runs one async callable on a fixed
interval in its own task; a failing tick is logged and the loop continues.
``build_jobs`` wires the overtime scan, the report scan and the midnight reset.
"""

import asyncio
import logging
from datetime import date
from typing import Awaitable, Callable

from timekeeper.config import settings
from timekeeper.services.attendance_report_service import attendance_report_service
from timekeeper.services.organization_hours_service import organization_hours_service
from timekeeper.services.overtime_reminder_service import overtime_reminder_service
from timekeeper.utils.clock import local_today

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[object]]


class PollingJob:
    """주기 작업 — Runs ``job`` every ``interval_seconds`` until stopped."""

    def __init__(self, name: str, interval_seconds: float, job: Job) -> None:
        self.name = name
        self.interval_seconds = interval_seconds
        self._job = job
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> None:
        """작업 1회 실행 — Exceptions are logged, never propagated."""
        try:
            await self._job()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled job %s failed", self.name)

    async def _loop(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"polling:{self.name}")
        logger.info("Started %s every %ss", self.name, self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Stopped %s", self.name)


class MidnightReset:
    """날짜 변경 감지 — Calls ``on_new_day`` once whenever the local date changes."""

    def __init__(self, on_new_day: Callable[[], None], today: Callable[[], date] = local_today) -> None:
        self._on_new_day = on_new_day
        self._today = today
        self._current = today()

    async def __call__(self) -> bool:
        today = self._today()
        if today == self._current:
            return False
        logger.info("Local date changed %s -> %s, running daily reset", self._current, today)
        self._current = today
        self._on_new_day()
        return True


def _daily_reset() -> None:
    overtime_reminder_service.reset_daily()
    organization_hours_service.clear_cache()


def build_jobs() -> list[PollingJob]:
    """앱 수명주기에서 시작할 작업 목록."""
    return [
        PollingJob(
            "overtime-reminder",
            settings.OVERTIME_SCAN_INTERVAL_MINUTES * 60,
            overtime_reminder_service.run_scan,
        ),
        PollingJob(
            "attendance-reports",
            settings.REPORT_SCAN_INTERVAL_MINUTES * 60,
            attendance_report_service.run_scan,
        ),
        PollingJob("midnight-reset", 60, MidnightReset(_daily_reset)),
    ]
