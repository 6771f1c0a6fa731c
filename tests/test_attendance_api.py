"""근태 API 테스트.

Attendance API tests — HTTP status codes and error bodies of the state machine.
"""

from datetime import timedelta

from httpx import AsyncClient

from tests.conftest import WORK_DAY, local_dt
from timekeeper.models.organization import Organization
from timekeeper.models.user import User

BASE = "/api/v1/attendance"


def _check_in_body(user: User, org: Organization, hour: int = 9, minute: int = 0) -> dict:
    return {
        "user_id": str(user.id),
        "organization_id": str(org.id),
        "branch_id": str(user.branch_id) if user.branch_id else None,
        "at": local_dt(WORK_DAY, hour, minute).isoformat(),
    }


class TestCheckInApi:
    """출근 API 테스트."""

    async def test_check_in_returns_201(self, client: AsyncClient, org: Organization, employee: User):
        res = await client.post(f"{BASE}/check-in", json=_check_in_body(employee, org))
        assert res.status_code == 201
        data = res.json()
        assert data["status"] == "present"
        assert data["user_id"] == str(employee.id)
        assert data["work_date"] == WORK_DAY.isoformat()
        assert data["breaks"] == []

    async def test_duplicate_returns_409(self, client: AsyncClient, org: Organization, employee: User):
        """중복 출근은 409와 에러 이름."""
        await client.post(f"{BASE}/check-in", json=_check_in_body(employee, org))
        res = await client.post(f"{BASE}/check-in", json=_check_in_body(employee, org, 10))
        assert res.status_code == 409
        assert res.json()["error"] == "DuplicateCheckIn"

    async def test_invalid_payload_returns_422(self, client: AsyncClient):
        res = await client.post(f"{BASE}/check-in", json={"user_id": "not-a-uuid"})
        assert res.status_code == 422


class TestBreakAndCheckOutApi:
    """휴식/퇴근 API 테스트."""

    async def test_full_day(self, client: AsyncClient, org: Organization, employee: User):
        """출근 → 휴식 → 퇴근 흐름."""
        await client.post(f"{BASE}/check-in", json=_check_in_body(employee, org))
        res = await client.post(
            f"{BASE}/break",
            json={"user_id": str(employee.id), "action": "start", "at": local_dt(WORK_DAY, 12).isoformat()},
        )
        assert res.status_code == 200
        assert res.json()["status"] == "on_break"

        res = await client.post(
            f"{BASE}/check-out",
            json={"user_id": str(employee.id), "at": local_dt(WORK_DAY, 17, 30).isoformat()},
        )
        assert res.status_code == 200
        data = res.json()
        assert data["status"] == "completed"
        assert data["duration"] == "3h 0m"
        assert data["total_break_minutes"] == 330
        assert data["breaks"][0]["end_at"] is not None

    async def test_check_out_without_shift_returns_404(self, client: AsyncClient, employee: User):
        res = await client.post(f"{BASE}/check-out", json={"user_id": str(employee.id)})
        assert res.status_code == 404
        assert res.json()["error"] == "NoActiveShift"

    async def test_break_end_without_break_returns_400(self, client: AsyncClient, org: Organization, employee: User):
        await client.post(f"{BASE}/check-in", json=_check_in_body(employee, org))
        res = await client.post(
            f"{BASE}/break",
            json={"user_id": str(employee.id), "action": "end", "at": local_dt(WORK_DAY, 12).isoformat()},
        )
        assert res.status_code == 400
        assert res.json()["error"] == "NoOpenBreak"

    async def test_unknown_break_action_returns_422(self, client: AsyncClient, employee: User):
        res = await client.post(f"{BASE}/break", json={"user_id": str(employee.id), "action": "pause"})
        assert res.status_code == 422

    async def test_check_out_before_check_in_returns_400(self, client: AsyncClient, org: Organization, employee: User):
        await client.post(f"{BASE}/check-in", json=_check_in_body(employee, org))
        res = await client.post(
            f"{BASE}/check-out",
            json={"user_id": str(employee.id), "at": local_dt(WORK_DAY, 8).isoformat()},
        )
        assert res.status_code == 400
        assert res.json()["error"] == "InvalidTimeRange"


class TestTimingApi:
    """출근/퇴근 응답의 근무 시간 판정 테스트."""

    async def test_late_check_in_and_early_check_out(self, client: AsyncClient, org: Organization, employee: User):
        res = await client.post(f"{BASE}/check-in", json=_check_in_body(employee, org, 9, 30))
        data = res.json()
        assert (data["is_late"], data["late_minutes"]) == (True, 30)
        assert data["left_early"] is None

        res = await client.post(
            f"{BASE}/check-out",
            json={"user_id": str(employee.id), "at": local_dt(WORK_DAY, 16, 30).isoformat()},
        )
        data = res.json()
        assert data["duration"] == "7h 0m"
        assert (data["left_early"], data["early_minutes"]) == (True, 30)
        assert data["overtime_minutes"] == 0
        assert data["segments"] == [{"day": WORK_DAY.isoformat(), "work_minutes": 420, "break_minutes": 0}]

    async def test_overnight_shift_into_weekend(self, client: AsyncClient, org: Organization, employee: User):
        """금요일 야간 → 토요일: 토요일 분은 전부 초과근무."""
        friday = WORK_DAY + timedelta(days=2)
        saturday = friday + timedelta(days=1)
        body = _check_in_body(employee, org)
        body["at"] = local_dt(friday, 22).isoformat()
        await client.post(f"{BASE}/check-in", json=body)

        res = await client.post(
            f"{BASE}/check-out",
            json={"user_id": str(employee.id), "at": local_dt(saturday, 6).isoformat()},
        )
        data = res.json()
        assert res.status_code == 200
        assert data["duration"] == "8h 0m"
        assert data["segments"] == [
            {"day": friday.isoformat(), "work_minutes": 120, "break_minutes": 0},
            {"day": saturday.isoformat(), "work_minutes": 360, "break_minutes": 0},
        ]
        assert data["overtime_minutes"] == 360
        assert (data["left_early"], data["early_minutes"]) == (False, 0)


class TestTodayApi:
    async def test_today_returns_record(self, client: AsyncClient, org: Organization, employee: User):
        await client.post(f"{BASE}/check-in", json=_check_in_body(employee, org))
        res = await client.get(f"{BASE}/today/{employee.id}", params={"day": WORK_DAY.isoformat()})
        assert res.status_code == 200
        assert res.json()["status"] == "present"

    async def test_today_without_record_returns_null(self, client: AsyncClient, employee: User):
        res = await client.get(f"{BASE}/today/{employee.id}", params={"day": WORK_DAY.isoformat()})
        assert res.status_code == 200
        assert res.json() is None


class TestHealth:
    async def test_health(self, client: AsyncClient):
        res = await client.get("/health")
        assert res.json() == {"status": "ok"}
