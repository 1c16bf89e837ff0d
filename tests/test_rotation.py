from datetime import datetime, timedelta, timezone

import pytest

from luckytaj_backend.api.games.rotation import (
    MS_PER_DAY,
    day_index,
    next_rotation_at,
    select_daily,
    start_index,
)


def at_day(day: int, hour: int = 12) -> datetime:
    return datetime.fromtimestamp(day * MS_PER_DAY / 1000, tz=timezone.utc) + timedelta(hours=hour)


def test_day_index_counts_whole_days_since_epoch():
    assert day_index(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0
    assert day_index(datetime(1970, 1, 1, 23, 59, 59, tzinfo=timezone.utc)) == 0
    assert day_index(datetime(1970, 1, 2, tzinfo=timezone.utc)) == 1
    assert day_index(datetime(2024, 1, 1, tzinfo=timezone.utc)) == 19723


def test_naive_datetime_is_treated_as_utc():
    assert day_index(datetime(2024, 1, 1, 6)) == day_index(datetime(2024, 1, 1, 6, tzinfo=timezone.utc))


def test_other_timezones_use_the_utc_day():
    # 2024-01-01 23:30 at UTC-5 is already 2024-01-02 in UTC
    eastern = timezone(timedelta(hours=-5))
    assert day_index(datetime(2024, 1, 1, 23, 30, tzinfo=eastern)) == day_index(
        datetime(2024, 1, 2, 4, 30, tzinfo=timezone.utc)
    )


def test_five_items_day_seven_starts_at_c():
    assert select_daily(list("ABCDE"), 3, at_day(7)) == ["C", "D", "E"]


def test_selection_wraps_around_the_pool():
    assert select_daily(list("ABCDE"), 3, at_day(9)) == ["E", "A", "B"]


@pytest.mark.parametrize("size", [1, 2, 3, 5, 8, 13])
def test_same_day_same_pool_is_deterministic(size):
    pool = list(range(size))
    for k in range(size + 1):
        morning = at_day(20000, hour=0)
        evening = at_day(20000, hour=23)
        assert select_daily(pool, k, morning) == select_daily(pool, k, evening)


@pytest.mark.parametrize("size", [1, 4, 7])
def test_full_cycle_leads_with_every_entry_once(size):
    pool = list(range(size))
    leaders = [select_daily(pool, 1, at_day(d))[0] for d in range(size)]
    assert sorted(leaders) == pool


def test_k_greater_than_one_covers_pool_within_a_cycle():
    pool = list("ABCDEFG")
    seen = set()
    for d in range(len(pool) - 3 + 1):
        seen.update(select_daily(pool, 3, at_day(d)))
    assert seen == set(pool)


def test_length_is_min_of_k_and_pool():
    assert len(select_daily(list("AB"), 3, at_day(1))) == 2
    assert len(select_daily(list("ABCDE"), 3, at_day(1))) == 3


def test_empty_pool_and_non_positive_k_give_empty_selection():
    now = datetime.now(timezone.utc)
    assert select_daily([], 3, now) == []
    assert select_daily(list("ABC"), 0, now) == []
    assert select_daily(list("ABC"), -2, now) == []


def test_start_index_and_next_rotation():
    assert start_index(5, at_day(7)) == 2
    assert start_index(0, at_day(7)) == 0
    assert next_rotation_at(at_day(7, hour=15)) == at_day(8, hour=0)
