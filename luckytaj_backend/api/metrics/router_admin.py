from __future__ import annotations
import logging
from datetime import timedelta
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from neo4j import Session

from luckytaj_backend.core.admin_guard import require_admin
from luckytaj_backend.core.neo_driver import session_dep
from . import aggregates
from .schema import CleanupOut, DeviceDistributionOut, OverviewOut, RealtimeRow, TipPerformanceRow, TrendRow
from .service import (
    daily_counts,
    device_counts,
    minute_counts,
    previous_window,
    purge_interactions,
    tip_counts,
    utcnow,
    window_for_days,
    window_totals,
)

router = APIRouter(prefix="/metrics", tags=["admin-metrics"])

log = logging.getLogger("metrics.admin")


def _failed(what: str) -> HTTPException:
    log.exception("failed to get %s", what)
    return HTTPException(status_code=500, detail=f"Failed to get {what}")


@router.get("/overview", response_model=OverviewOut)
def r_overview(
    days: int = Query(default=1, ge=1, le=365),
    admin: str = Depends(require_admin),
    session: Session = Depends(session_dep),
):
    """Headline numbers for the window plus % change against the window before it."""
    window = window_for_days(days)
    try:
        current = window_totals(session, window)
        previous = window_totals(session, previous_window(window))
    except Exception:
        raise _failed("overview metrics")
    return aggregates.overview(current, previous)


@router.get("/devices", response_model=DeviceDistributionOut)
def r_devices(
    days: int = Query(default=1, ge=1, le=365),
    admin: str = Depends(require_admin),
    session: Session = Depends(session_dep),
):
    try:
        rows = device_counts(session, window_for_days(days))
    except Exception:
        raise _failed("device distribution")
    return aggregates.device_distribution(rows)


@router.get("/tips", response_model=List[TipPerformanceRow])
def r_tips(
    days: int = Query(default=1, ge=1, le=365),
    admin: str = Depends(require_admin),
    session: Session = Depends(session_dep),
):
    try:
        rows = tip_counts(session, window_for_days(days))
    except Exception:
        raise _failed("tip performance")
    return aggregates.tip_performance(rows)


@router.get("/trend", response_model=List[TrendRow])
def r_trend(
    days: int = Query(default=7, ge=1, le=365),
    admin: str = Depends(require_admin),
    session: Session = Depends(session_dep),
):
    try:
        rows = daily_counts(session, window_for_days(days))
    except Exception:
        raise _failed("metrics trend")
    return aggregates.metrics_trend(rows)


@router.get("/realtime", response_model=List[RealtimeRow])
def r_realtime(
    admin: str = Depends(require_admin),
    session: Session = Depends(session_dep),
):
    end = utcnow()
    try:
        rows = minute_counts(session, (end - timedelta(hours=1), end))
    except Exception:
        raise _failed("realtime metrics")
    return aggregates.realtime(rows)


@router.delete("/cleanup", response_model=CleanupOut)
def r_cleanup(
    days: int = Query(default=30, ge=0, le=3650),
    admin: str = Depends(require_admin),
    session: Session = Depends(session_dep),
):
    try:
        deleted, cutoff = purge_interactions(session, days)
    except Exception:
        log.exception("cleanup failed (days=%d)", days)
        raise HTTPException(status_code=500, detail="Failed to cleanup old data")
    log.info("cleanup by %s removed %d interactions older than %s", admin, deleted, cutoff.date())
    return CleanupOut(deleted_count=deleted)
