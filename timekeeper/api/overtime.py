"""초과근무 라우터 — 수동 초과근무 점검 API.

Overtime Router — Runs one overtime reminder scan on request.
"""

from fastapi import APIRouter

from timekeeper.schemas.attendance import OvertimeCheckResponse
from timekeeper.services.overtime_reminder_service import overtime_reminder_service

router: APIRouter = APIRouter()


@router.post("/check", response_model=OvertimeCheckResponse)
async def trigger_overtime_check() -> dict:
    """초과근무 점검을 즉시 실행합니다.

    Run the overtime scan now. Reminders already sent today are not repeated.
    """
    return await overtime_reminder_service.trigger_check()
