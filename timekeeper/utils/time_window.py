"""시간 계산 유틸리티 — 시각 문자열과 근무 시간 계산.

Time-window calculator. Pure functions that turn clock strings, stored
durations and raw timestamps into comparable minute offsets and business
quantities (hours worked, progress, overtime). No I/O.

All ``datetime`` arguments must be timezone-aware (or naive UTC); minute-of-day
values are taken in the configured local time zone.
"""

import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Sequence

from timekeeper.utils.clock import ensure_utc, start_of_local_day, to_local
from timekeeper.utils.exceptions import InvalidTimeFormat

logger = logging.getLogger(__name__)

MAX_OPEN_SHIFT_HOURS: float = 24.0
DEFAULT_PROGRESS_MINUTES: int = 420
DEFAULT_STANDARD_MINUTES: int = 480

_CLOCK = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_HOURS_MINUTES = re.compile(
    r"(\d+(?:\.\d+)?)\s*h(?:ours?)?\s*(\d+(?:\.\d+)?)\s*m(?:in(?:utes?)?)?", re.IGNORECASE
)
_HOURS_ONLY = re.compile(r"(\d+(?:\.\d+)?)\s*h(?:ours?)?$", re.IGNORECASE)
_MINUTES_ONLY = re.compile(r"(\d+(?:\.\d+)?)\s*m(?:in(?:utes?)?)?$", re.IGNORECASE)
_DECIMAL = re.compile(r"^(\d+(?:\.\d+)?)$")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def round_half_up(value: float) -> int:
    """0.5는 올림 — Integer rounding for display percentages (12.5 -> 13)."""
    return int(math.floor(value + 0.5))


def round2(value: float) -> float:
    return round(value, 2)


def time_to_minutes(value: str) -> int:
    """"HH:MM" (또는 "HH:MM:SS") → 자정 이후 분.

    Raises:
        InvalidTimeFormat: 형식 오류, 시 > 23, 분 > 59
    """
    match = _CLOCK.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidTimeFormat(f"Invalid time format: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        raise InvalidTimeFormat(f"Time out of range: {value!r}")
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    minutes = int(minutes) % (24 * 60)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_clock_12h(minutes: int) -> str:
    """분 → "05:30 PM" — 12-hour clock for notification payloads."""
    minutes = int(minutes) % (24 * 60)
    hours, mins = divmod(minutes, 60)
    suffix = "AM" if hours < 12 else "PM"
    return f"{(hours % 12) or 12:02d}:{mins:02d} {suffix}"


def minutes_of_day(dt: datetime) -> int:
    """로컬 시간 기준 자정 이후 분 — Minutes past local midnight."""
    local = to_local(dt)
    return local.hour * 60 + local.minute


def parse_duration_to_minutes(text: str | None) -> int:
    """사람이 입력한 근무 시간 문자열을 분으로 변환합니다.

    Accepted, in order: ``H:MM[:SS]``, ``Xh Ym`` (also ``8 hours 30 minutes``),
    ``Xh``, ``Ym``, decimal hours (``8.5``). Anything else falls back to the
    first number found: <= 24 is read as hours, larger values as minutes.
    Unparseable input returns 0 and logs a warning; this never raises.
    """
    if text is None:
        return 0
    value = str(text).strip()
    if value in ("", "0"):
        return 0

    match = _CLOCK.match(value)
    if match:
        seconds = int(match.group(3) or 0)
        return int(match.group(1)) * 60 + int(match.group(2)) + round_half_up(seconds / 60)

    match = _HOURS_MINUTES.search(value)
    if match:
        return round_half_up(float(match.group(1)) * 60 + float(match.group(2)))

    match = _HOURS_ONLY.search(value)
    if match:
        return round_half_up(float(match.group(1)) * 60)

    match = _MINUTES_ONLY.search(value)
    if match:
        return round_half_up(float(match.group(1)))

    match = _DECIMAL.match(value)
    if match:
        return round_half_up(float(match.group(1)) * 60)

    numbers = _NUMBER.findall(value)
    if numbers:
        first = float(numbers[0])
        return round_half_up(first * 60) if first <= 24 else round_half_up(first)

    logger.warning("Unable to parse duration string: %r", text)
    return 0


def format_duration(minutes: float) -> str:
    """분 → "Xh Ym" (저장 형식)."""
    total = max(0, round_half_up(minutes))
    return f"{total // 60}h {total % 60}m"


def format_duration_words(minutes: float) -> str:
    """분 → "2 hours 15 minutes" — Pluralized, for reminder messages."""
    total = max(0, round_half_up(minutes))
    hours, mins = divmod(total, 60)
    hour_part = f"{hours} hour{'s' if hours != 1 else ''}"
    minute_part = f"{mins} minute{'s' if mins != 1 else ''}"
    if hours and mins:
        return f"{hour_part} {minute_part}"
    if hours:
        return hour_part
    return minute_part


def real_time_hours(
    check_in_at: datetime | None,
    check_out_at: datetime | None,
    duration: str | None,
    now: datetime,
) -> float:
    """교대의 실시간 근무 시간.

    Closed shift: the stored duration (parsed), independent of ``now``; when no
    duration was stored, the check-in to check-out span. Open shift:
    ``now - check_in_at`` clamped to [0, 24h].
    """
    if check_in_at is None:
        return 0.0
    if check_out_at is not None:
        if duration:
            return parse_duration_to_minutes(duration) / 60
        span = (ensure_utc(check_out_at) - ensure_utc(check_in_at)).total_seconds() / 3600
        return max(0.0, span)
    elapsed = (ensure_utc(now) - ensure_utc(check_in_at)).total_seconds() / 3600
    return min(max(0.0, elapsed), MAX_OPEN_SHIFT_HOURS)


def work_day_progress(now: datetime, start_time: str, standard_minutes: int = DEFAULT_PROGRESS_MINUTES) -> float:
    """근무일 진행률 [0, 1] — Only used to project end-of-day hours."""
    if standard_minutes <= 0:
        return 1.0
    elapsed = minutes_of_day(now) - time_to_minutes(start_time)
    return min(1.0, max(0, elapsed) / standard_minutes)


def calculate_percentage(part: float, total: float, decimals: int = 1) -> float:
    if total <= 0:
        return 0.0
    return round(part / total * 100, decimals)


def calculate_efficiency(actual_minutes: float, expected_minutes: float) -> float:
    """실근무/기대근무 비율(%) — capped to two decimals, 0 when nothing was expected."""
    if expected_minutes <= 0:
        return 0.0
    return round2(actual_minutes / expected_minutes * 100)


def calculate_average_time(times: Sequence[datetime]) -> str:
    """평균 시각 "HH:MM" — 'N/A' for an empty list."""
    if not times:
        return "N/A"
    average = sum(minutes_of_day(t) for t in times) / len(times)
    return minutes_to_time(round_half_up(average))


@dataclass(frozen=True)
class BreakSpan:
    start: datetime
    end: datetime | None


def break_minutes(breaks: Iterable[BreakSpan], until: datetime | None = None) -> int:
    """휴식 합계(분).

    Sums closed intervals rounded to whole minutes. Open intervals count only when
    ``until`` is given (they are treated as closed at that instant).
    """
    total = 0.0
    for span in breaks:
        end = span.end if span.end is not None else until
        if end is None:
            continue
        seconds = (ensure_utc(end) - ensure_utc(span.start)).total_seconds()
        if seconds > 0:
            total += seconds / 60
    return round_half_up(total)


@dataclass(frozen=True)
class WorkSession:
    total_minutes: int
    break_minutes: int
    net_minutes: int
    net_hours: float
    overtime_minutes: int


def calculate_work_session(
    check_in_at: datetime,
    check_out_at: datetime,
    break_total: int = 0,
    standard_minutes: int = DEFAULT_STANDARD_MINUTES,
) -> WorkSession:
    total = max(0, round_half_up((ensure_utc(check_out_at) - ensure_utc(check_in_at)).total_seconds() / 60))
    breaks = min(max(0, break_total), total)
    net = total - breaks
    return WorkSession(
        total_minutes=total,
        break_minutes=breaks,
        net_minutes=net,
        net_hours=round(net / 60, 4),
        overtime_minutes=max(0, net - standard_minutes),
    )


@dataclass(frozen=True)
class ShiftSegment:
    day: date
    start: datetime
    end: datetime
    work_minutes: int
    break_minutes: int


def split_multi_day_shift(check_in_at: datetime, check_out_at: datetime, break_total: int = 0) -> list[ShiftSegment]:
    """자정 기준으로 교대를 날짜별로 분할합니다.

    Splits a shift at local midnight. Breaks are allocated to each segment in
    proportion to its share of the total span.
    """
    start = ensure_utc(check_in_at)
    end = ensure_utc(check_out_at)
    if end <= start:
        return []

    total_seconds = (end - start).total_seconds()
    segments: list[ShiftSegment] = []
    cursor = start
    while cursor < end:
        day = to_local(cursor).date()
        boundary = min(end, start_of_local_day(day + timedelta(days=1)))
        seconds = (boundary - cursor).total_seconds()
        allocated = round_half_up(break_total * seconds / total_seconds)
        segments.append(
            ShiftSegment(
                day=day,
                start=cursor,
                end=boundary,
                work_minutes=max(0, round_half_up(seconds / 60) - allocated),
                break_minutes=allocated,
            )
        )
        cursor = boundary
    return segments
