"""중복 실행 방지 저장소 — 예약 작업의 1일 1회 보장.

Dedup store — At-most-once guard for scheduled side effects.

Keys are composite strings, e.g. ``overtime:{record_id}:{day}`` or
``evening_report:{org_id}:{day}``. Entries expire after a fixed horizon and the
scheduler clears the store at local midnight.
"""

import threading
import time
from collections import OrderedDict
from datetime import date
from typing import Protocol
from uuid import UUID

from timekeeper.config import settings


class DedupStore(Protocol):
    """중복 방지 저장소 인터페이스 — Storage-agnostic dedup interface."""

    def has_fired(self, key: str) -> bool: ...

    def mark_fired(self, key: str) -> None: ...

    def claim(self, key: str) -> bool: ...

    def release(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def __len__(self) -> int: ...


def overtime_key(record_id: UUID, day: date) -> str:
    return f"overtime:{record_id}:{day.isoformat()}"


def report_key(kind: str, organization_id: UUID, day: date) -> str:
    return f"{kind}_report:{organization_id}:{day.isoformat()}"


class InMemoryDedupStore:
    """프로세스 내 TTL 저장소.

    Thread-safe in-process store. Expired keys are evicted lazily on every
    access; when ``max_entries`` is reached the oldest keys are dropped.
    """

    def __init__(self, ttl_seconds: float, max_entries: int = 10000) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._entries: "OrderedDict[str, float]" = OrderedDict()
        self._lock = threading.Lock()

    def _evict_expired(self, now: float) -> None:
        # 삽입 순서 = 만료 순서 (Insertion order equals expiry order)
        while self._entries:
            key, inserted = next(iter(self._entries.items()))
            if now - inserted < self._ttl:
                break
            self._entries.popitem(last=False)

    def has_fired(self, key: str) -> bool:
        with self._lock:
            self._evict_expired(time.monotonic())
            return key in self._entries

    def _insert(self, key: str, now: float) -> None:
        self._entries.pop(key, None)
        self._entries[key] = now
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def mark_fired(self, key: str) -> None:
        with self._lock:
            now = time.monotonic()
            self._evict_expired(now)
            self._insert(key, now)

    def claim(self, key: str) -> bool:
        """키 선점 (insert-if-absent).

        Returns True and records the key when it was not already present.
        Callers that end up not firing hand the key back with ``release``.
        """
        with self._lock:
            now = time.monotonic()
            self._evict_expired(now)
            if key in self._entries:
                return False
            self._insert(key, now)
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired(time.monotonic())
            return len(self._entries)


# 프로세스 공용 저장소: Shared by the overtime and report services
dedup_store: InMemoryDedupStore = InMemoryDedupStore(
    ttl_seconds=settings.DEDUP_TTL_HOURS * 3600,
    max_entries=settings.DEDUP_MAX_ENTRIES,
)
