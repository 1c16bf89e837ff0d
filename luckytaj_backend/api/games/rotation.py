# luckytaj_backend/api/games/rotation.py
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import List, Sequence, TypeVar

T = TypeVar("T")

MS_PER_DAY = 86_400_000


def _aware(now: datetime) -> datetime:
    # naive datetimes are taken as UTC
    return now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)


def day_index(now: datetime) -> int:
    """Whole days since the Unix epoch; the rotation clock."""
    epoch_ms = int(_aware(now).timestamp() * 1000)
    return epoch_ms // MS_PER_DAY


def start_index(pool_size: int, now: datetime) -> int:
    if pool_size <= 0:
        return 0
    return day_index(now) % pool_size


def next_rotation_at(now: datetime) -> datetime:
    """Start of the next day index (UTC midnight)."""
    return datetime.fromtimestamp((day_index(now) + 1) * MS_PER_DAY / 1000, tz=timezone.utc)


def day_start(day: int) -> datetime:
    return datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(days=day)


def select_daily(pool: Sequence[T], k: int, now: datetime) -> List[T]:
    """
    Pick today's `k` consecutive entries of `pool`, wrapping at the end.

    Every caller evaluating the same day index against a pool of the same
    length gets the same ordered list. Over `len(pool)` consecutive days every
    entry leads the selection once. Empty pool or k <= 0 gives [].
    """
    size = len(pool)
    if size == 0 or k <= 0:
        return []
    start = day_index(now) % size
    return [pool[(start + i) % size] for i in range(min(k, size))]
