"""API 라우터 패키지 — 모든 엔드포인트 통합.

API Router package — Aggregates all endpoints into a single router.

Included routers:
    - attendance: 출근/휴식/퇴근 (Check-in, breaks, check-out)
    - reports: 오전/저녁 리포트 조회 (On-demand morning/evening reports)
    - overtime: 수동 초과근무 점검 (Manual overtime scan)
"""

from fastapi import APIRouter

from timekeeper.api.attendance import router as attendance_router
from timekeeper.api.overtime import router as overtime_router
from timekeeper.api.reports import router as reports_router

api_router: APIRouter = APIRouter()

api_router.include_router(attendance_router, prefix="/attendance", tags=["Attendance"])
api_router.include_router(reports_router, prefix="/reports", tags=["Reports"])
api_router.include_router(overtime_router, prefix="/overtime", tags=["Overtime"])
