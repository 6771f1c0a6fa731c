"""근태 라우터 — 출근/휴식/퇴근 API.

Attendance Router — Drives the attendance state machine over HTTP.
Domain errors are mapped to status codes by the app-level exception handler.
"""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from timekeeper.database import get_db
from timekeeper.schemas.attendance import AttendanceResponse, BreakRequest, CheckInRequest, CheckOutRequest
from timekeeper.services.attendance_service import attendance_service

router: APIRouter = APIRouter()


@router.post("/check-in", response_model=AttendanceResponse, status_code=201)
async def check_in(
    data: CheckInRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """출근을 기록합니다.

    Record a check-in. 409 when the user already has an open shift that day.
    The response carries the lateness verdict.

    Args:
        data: 출근 요청 데이터 (Check-in request data)
        db: 비동기 데이터베이스 세션 (Async database session)

    Returns:
        dict: 생성된 근태 기록 (Created attendance record)
    """
    record = await attendance_service.check_in(
        db,
        user_id=data.user_id,
        organization_id=data.organization_id,
        branch_id=data.branch_id,
        at=data.at,
    )
    await db.commit()
    return await attendance_service.build_timing_response(db, record)


@router.post("/check-out", response_model=AttendanceResponse)
async def check_out(
    data: CheckOutRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """퇴근을 기록합니다 — Close the open shift; adds early departure, overtime and the per-day split."""
    record = await attendance_service.check_out(db, user_id=data.user_id, at=data.at)
    await db.commit()
    return await attendance_service.build_timing_response(db, record)


@router.post("/break", response_model=AttendanceResponse)
async def manage_break(
    data: BreakRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """휴식 시작/종료 — Start or end a break on the open shift."""
    record = await attendance_service.manage_break(db, user_id=data.user_id, action=data.action, at=data.at)
    await db.commit()
    return attendance_service.build_response(record)


@router.get("/today/{user_id}", response_model=AttendanceResponse | None)
async def get_today(
    user_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    day: Annotated[date | None, Query()] = None,
) -> dict | None:
    """오늘(또는 지정일) 근태 기록 조회 — Latest shift of the day, or null."""
    record = await attendance_service.get_today(db, user_id, day)
    if record is None:
        return None
    return attendance_service.build_response(record)
