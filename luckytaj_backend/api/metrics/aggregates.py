# luckytaj_backend/api/metrics/aggregates.py
"""
Dashboard shaping over grouped counts.

Counting and grouping happen in Cypher (see `service.window_totals`,
`device_counts`, `tip_counts`, `daily_counts`, `minute_counts`). This module
turns those rows into response payloads: rates, half-up rounding and
period-over-period change.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Union

Row = Dict[str, Any]
Number = Union[int, float]


# ----------------- rounding -----------------
def round_half_up(x: Number, places: int = 0) -> Number:
    q = Decimal(1).scaleb(-places)
    d = Decimal(str(x)).quantize(q, rounding=ROUND_HALF_UP)
    return int(d) if places == 0 else float(d)

def _rate(part: int, whole: int, places: int) -> float:
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100, places)

def _maybe_round(x: Optional[Number], scale: float = 1) -> Optional[int]:
    return None if x is None else round_half_up(x / scale)


# ----------------- headline numbers -----------------
def click_through_rate(views: int, clicks: int) -> float:
    return _rate(clicks, views, 2)

def average_time_on_page(avg_time_ms: Optional[Number]) -> int:
    """Mean of positive time events, in whole seconds; 0 when there were none."""
    return _maybe_round(avg_time_ms, 1000) or 0


# ----------------- breakdowns -----------------
def device_distribution(counts: Iterable[Row]) -> Dict[str, Dict[str, Number]]:
    counts = [(r["device"], int(r["n"])) for r in counts]
    total = sum(n for _, n in counts)
    return {device: {"count": n, "percentage": _rate(n, total, 1)} for device, n in counts}

def tip_performance(rows: Iterable[Row]) -> List[Dict[str, Any]]:
    out = [
        {
            "tip_id": r["tip_id"],
            "views": int(r["views"]),
            "clicks": int(r["clicks"]),
            "ctr": _rate(int(r["clicks"]), int(r["views"]), 1),
            "avg_time_seconds": _maybe_round(r.get("avg_time_ms"), 1000),
        }
        for r in rows
    ]
    out.sort(key=lambda t: (-t["views"], t["tip_id"]))
    return out

def metrics_trend(rows: Iterable[Row]) -> List[Dict[str, Any]]:
    out = [
        {
            "date": r["date"],
            "views": int(r["views"]),
            "clicks": int(r["clicks"]),
            "avg_time_ms": _maybe_round(r.get("avg_time_ms")),
        }
        for r in rows
    ]
    return sorted(out, key=lambda t: t["date"])

def realtime(rows: Iterable[Row]) -> List[Dict[str, int]]:
    return sorted(
        ({"minute": int(r["minute"]), "views": int(r["views"]), "clicks": int(r["clicks"])} for r in rows),
        key=lambda b: b["minute"],
    )


# ----------------- period over period -----------------
def percent_change(current: Number, previous: Number) -> Number:
    if previous == 0:
        return 100 if current > 0 else 0
    return round_half_up((current - previous) / previous * 100, 1)

def _headline(totals: Row) -> Dict[str, Number]:
    return {
        "total_views": totals["views"],
        "unique_visitors": totals["unique_visitors"],
        "click_through_rate": click_through_rate(totals["views"], totals["clicks"]),
        "avg_time_on_page": average_time_on_page(totals.get("avg_time_ms")),
    }

def overview(current: Row, previous: Row) -> Dict[str, Dict[str, Number]]:
    """`current`/`previous` are `service.window_totals` results."""
    now_, before = _headline(current), _headline(previous)
    return {
        name: {"value": value, "change": percent_change(value, before[name])}
        for name, value in now_.items()
    }
