"""리포트 라우터 — 오전/저녁 리포트 조회 API.

Reports Router — Computes report payloads on demand. Nothing is dispatched.
"""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from timekeeper.database import get_db
from timekeeper.schemas.report import EveningReport, MorningReport
from timekeeper.services.attendance_report_service import attendance_report_service

router: APIRouter = APIRouter()


@router.get("/{organization_id}/morning", response_model=MorningReport)
async def get_morning_report(
    organization_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    day: Annotated[date | None, Query()] = None,
) -> MorningReport:
    """오전 리포트를 조회합니다.

    Build the morning report for a day (defaults to today). 404 for an unknown
    organization.
    """
    return await attendance_report_service.build_morning_report(db, organization_id, day)


@router.get("/{organization_id}/evening", response_model=EveningReport)
async def get_evening_report(
    organization_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    day: Annotated[date | None, Query()] = None,
) -> EveningReport:
    """저녁 리포트를 조회합니다 — Includes the comparison with the last working day."""
    return await attendance_report_service.build_evening_report(db, organization_id, day)
