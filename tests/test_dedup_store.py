"""중복 방지 저장소 테스트.

Dedup store tests — TTL expiry, size bound and key helpers.
"""

from datetime import date
from uuid import uuid4

import pytest

from timekeeper.services import dedup_store as dedup_module
from timekeeper.services.dedup_store import InMemoryDedupStore, overtime_key, report_key


class _FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock(monkeypatch) -> _FakeClock:
    fake = _FakeClock()
    monkeypatch.setattr(dedup_module.time, "monotonic", fake)
    return fake


class TestInMemoryDedupStore:
    """TTL 저장소 테스트."""

    def test_mark_and_check(self, clock: _FakeClock):
        store = InMemoryDedupStore(ttl_seconds=60)
        assert store.has_fired("a") is False
        store.mark_fired("a")
        assert store.has_fired("a") is True
        assert len(store) == 1

    def test_entries_expire_after_ttl(self, clock: _FakeClock):
        """TTL 경과 후 키는 자동 만료."""
        store = InMemoryDedupStore(ttl_seconds=60)
        store.mark_fired("a")
        clock.now += 30
        store.mark_fired("b")
        clock.now += 31
        assert store.has_fired("a") is False
        assert store.has_fired("b") is True
        clock.now += 30
        assert len(store) == 0

    def test_oldest_entries_dropped_when_full(self, clock: _FakeClock):
        """최대 크기 초과 시 가장 오래된 키부터 제거."""
        store = InMemoryDedupStore(ttl_seconds=600, max_entries=2)
        for key in ("a", "b", "c"):
            store.mark_fired(key)
            clock.now += 1
        assert store.has_fired("a") is False
        assert store.has_fired("b") and store.has_fired("c")

    def test_claim_is_insert_if_absent(self, clock: _FakeClock):
        """선점은 한 번만 성공하고, 반환 후 다시 선점 가능."""
        store = InMemoryDedupStore(ttl_seconds=60)
        assert store.claim("a") is True
        assert store.claim("a") is False
        assert store.has_fired("a") is True
        store.release("a")
        assert store.has_fired("a") is False
        assert store.claim("a") is True

    def test_claim_after_expiry(self, clock: _FakeClock):
        store = InMemoryDedupStore(ttl_seconds=60)
        store.mark_fired("a")
        assert store.claim("a") is False
        clock.now += 61
        assert store.claim("a") is True

    def test_clear(self, clock: _FakeClock):
        store = InMemoryDedupStore(ttl_seconds=600)
        store.mark_fired("a")
        store.clear()
        assert len(store) == 0


class TestKeys:
    def test_key_formats(self):
        record_id, org_id = uuid4(), uuid4()
        day = date(2025, 3, 12)
        assert overtime_key(record_id, day) == f"overtime:{record_id}:2025-03-12"
        assert report_key("evening", org_id, day) == f"evening_report:{org_id}:2025-03-12"
        assert report_key("morning", org_id, day) != report_key("evening", org_id, day)
