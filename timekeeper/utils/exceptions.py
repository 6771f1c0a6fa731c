"""커스텀 예외 정의.

Custom exception classes for the timekeeper service.

근태 엔진 예외(TimekeeperError 계열)는 HTTP와 무관한 도메인 예외이며,
API 계층의 예외 핸들러가 status_code로 변환합니다.
Domain errors carry a suggested ``status_code``; the FastAPI exception handler in
``timekeeper.main`` decides the actual HTTP response.
"""

from fastapi import HTTPException, status


class TimekeeperError(Exception):
    """근태 엔진 예외 베이스 — Base class for time-engine failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Attendance operation failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail: str = detail or self.default_detail
        super().__init__(self.detail)


class InvalidTimeFormat(TimekeeperError):
    default_detail = "Invalid time format, expected HH:MM"


class InvalidTimeRange(TimekeeperError):
    default_detail = "Timestamp is out of order for this shift"


class DuplicateCheckIn(TimekeeperError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "이미 오늘 출근 기록이 있습니다 (Already checked in today)"


class NoActiveShift(TimekeeperError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "출근 기록이 없습니다 (No active shift to check out)"


class NotCheckedIn(TimekeeperError):
    default_detail = "근무 중이 아닙니다 (Must be checked in and not on break to start a break)"


class NoOpenBreak(TimekeeperError):
    default_detail = "진행 중인 휴식이 없습니다 (No open break to end)"


class DataAccessFailure(TimekeeperError):
    """단위 작업의 일시적 조회 실패 — Transient failure scoped to one organization or record."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Data access failed"


class ConnectivityFailure(TimekeeperError):
    """전역 연결 실패 — Systemic failure; the current scheduler tick is aborted."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Database is unreachable"


class NotFoundError(HTTPException):
    """리소스를 찾을 수 없음 (404)."""

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
