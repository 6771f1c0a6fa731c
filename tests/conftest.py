"""테스트 인프라 — 인메모리 SQLite DB, 세션, httpx 클라이언트 픽스처.

Test infrastructure — In-memory SQLite (aiosqlite) database, session and httpx
client fixtures. The schema is created fresh for every test; all sessions share
one connection through ``StaticPool``.
"""

from collections.abc import AsyncGenerator
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from timekeeper.config import settings
from timekeeper.database import Base, get_db
from timekeeper.main import app
from timekeeper.models import *  # noqa: F401,F403: register all models with metadata
from timekeeper.models.attendance import STATUS_COMPLETED, STATUS_PRESENT, AttendanceRecord
from timekeeper.models.organization import Branch, Organization
from timekeeper.models.user import User
from timekeeper.services.dedup_store import dedup_store
from timekeeper.services.notification_service import notification_service
from timekeeper.services.organization_hours_service import organization_hours_service

TEST_DATABASE_URL = "sqlite+aiosqlite://"

# 2025-03-12 (수요일): A Wednesday; the day before is a working Tuesday
WORK_DAY = date(2025, 3, 12)


def local_dt(day: date, hour: int, minute: int = 0) -> datetime:
    """설정 시간대 기준 시각을 UTC로 — Local wall-clock time as an aware UTC datetime."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=ZoneInfo(settings.TIMEZONE)).astimezone(
        timezone.utc
    )


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션, 클라이언트
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 async 엔진 — 매 테스트마다 스키마를 새로 생성합니다."""
    eng = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """서비스에 주입할 세션 팩토리 (Session factory injected into scanners)."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """FastAPI 테스트 클라이언트 — DB 세션을 오버라이드합니다."""
    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_shared_state():
    """프로세스 공용 상태 초기화 — Caches, dedup keys and recorded events."""
    organization_hours_service.clear_cache()
    dedup_store.clear()
    notification_service.clear()
    yield
    organization_hours_service.clear_cache()
    dedup_store.clear()
    notification_service.clear()


# ---------------------------------------------------------------------------
# 헬퍼 픽스처: 테스트용 데이터 생성
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def org(db: AsyncSession) -> Organization:
    """09:00-17:00 영업 조직을 생성합니다."""
    o = Organization(name="Test Corp", open_time="09:00", close_time="17:00")
    db.add(o)
    await db.flush()
    return o


@pytest_asyncio.fixture
async def branch(db: AsyncSession, org: Organization) -> Branch:
    b = Branch(organization_id=org.id, name="Downtown")
    db.add(b)
    await db.flush()
    return b


async def make_user(
    db: AsyncSession,
    org: Organization,
    name: str,
    *,
    role: str = "employee",
    email: str | None = None,
    branch: Branch | None = None,
    target_hours: float | None = None,
) -> User:
    """테스트 사용자 생성 헬퍼."""
    user = User(
        organization_id=org.id,
        branch_id=branch.id if branch else None,
        full_name=name,
        email=email,
        role=role,
        target_hours_worked=target_hours,
    )
    db.add(user)
    await db.flush()
    return user


@pytest_asyncio.fixture
async def employee(db: AsyncSession, org: Organization, branch: Branch) -> User:
    return await make_user(db, org, "Alice Kim", email="alice@test.com", branch=branch)


@pytest_asyncio.fixture
async def owner(db: AsyncSession, org: Organization) -> User:
    return await make_user(db, org, "Olivia Owner", role="owner", email="owner@test.com")


async def add_shift(
    db: AsyncSession,
    user: User,
    check_in_at: datetime,
    check_out_at: datetime | None = None,
    duration: str | None = None,
) -> AttendanceRecord:
    """교대 기록 직접 생성 헬퍼 — Seed a shift without going through the state machine."""
    record = AttendanceRecord(
        organization_id=user.organization_id,
        user_id=user.id,
        branch_id=user.branch_id,
        work_date=check_in_at.astimezone(ZoneInfo(settings.TIMEZONE)).date(),
        check_in_at=check_in_at,
        check_out_at=check_out_at,
        status=STATUS_COMPLETED if check_out_at else STATUS_PRESENT,
        duration=duration,
        breaks=[],
    )
    db.add(record)
    await db.flush()
    return record
