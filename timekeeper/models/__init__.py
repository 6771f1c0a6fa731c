"""SQLAlchemy ORM 모델 패키지 — 모든 도메인 모델의 중앙 임포트 지점.

SQLAlchemy ORM models package — Central import point for all domain models.
Importing from this package registers every model with the metadata, which
``Base.metadata.create_all`` and relationship resolution rely on.

Modules:
    organization: 조직, 지점, 근무 시간, 특별일 (Organization, Branch, OrganizationHours, OrganizationSpecialDate)
    user: 사용자 (User)
    attendance: 교대 기록 및 휴식 (AttendanceRecord, BreakInterval)
"""

from timekeeper.models.organization import Organization, Branch, OrganizationHours, OrganizationSpecialDate
from timekeeper.models.user import User
from timekeeper.models.attendance import AttendanceRecord, BreakInterval

__all__ = [
    "Organization", "Branch", "OrganizationHours", "OrganizationSpecialDate",
    "User",
    "AttendanceRecord", "BreakInterval",
]
