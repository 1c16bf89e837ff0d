from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from neo4j import Session

from luckytaj_backend.core.neo_driver import session_dep
from .schema import TrackClickIn, TrackOut, TrackTimeIn, TrackViewIn, TrackViewOut
from .service import generate_tip_id, record_click, record_time_spent, record_view, request_meta

router = APIRouter(prefix="/metrics/track", tags=["metrics"])

log = logging.getLogger("metrics.track")

DB_WARNING = "Database unavailable"


def _opt_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None

def _lenient_view(data: Dict[str, Any]) -> TrackViewIn:
    # never reject a view; keep whatever is usable
    return TrackViewIn(
        tip_id=_opt_str(data.get("tipId")),
        session_id=_opt_str(data.get("sessionId")),
        user_id=_opt_str(data.get("userId")),
        page_url=_opt_str(data.get("pageUrl")),
    )


@router.post("/view", response_model=TrackViewOut, response_model_exclude_none=True)
async def r_track_view(
    request: Request,
    session: Session = Depends(session_dep),
):
    """
    Page-view beacon. Always answers 200 so a broken payload or a database
    outage never holds up the landing page.
    """
    try:
        data = await request.json()
        if not isinstance(data, dict):
            data = {}
    except Exception:
        data = {}

    body = _lenient_view(data)
    meta = request_meta(request, body.page_url)

    try:
        tip_id = record_view(
            session,
            tip_id=body.tip_id,
            session_id=body.session_id,
            user_id=body.user_id,
            meta=meta,
        )
    except Exception:
        log.exception("view not stored (tip=%s session=%s)", body.tip_id, body.session_id)
        return TrackViewOut(tip_id=generate_tip_id(), warning=DB_WARNING)

    return TrackViewOut(tip_id=tip_id)


@router.post("/click", response_model=TrackOut)
def r_track_click(
    body: TrackClickIn,
    request: Request,
    session: Session = Depends(session_dep),
):
    try:
        record_click(
            session,
            tip_id=body.tip_id,
            session_id=body.session_id,
            user_id=body.user_id,
            click_url=body.click_url,
            click_target=body.click_target,
            meta=request_meta(request, body.page_url),
        )
    except Exception:
        log.exception("click not stored (tip=%s)", body.tip_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to track click",
        )
    return TrackOut()


@router.post("/time", response_model=TrackOut)
def r_track_time(
    body: TrackTimeIn,
    request: Request,
    session: Session = Depends(session_dep),
):
    try:
        record_time_spent(
            session,
            tip_id=body.tip_id,
            session_id=body.session_id,
            user_id=body.user_id,
            time_spent_ms=body.time_spent_ms,
            meta=request_meta(request, body.page_url),
        )
    except Exception:
        log.exception("time not stored (tip=%s)", body.tip_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to track time",
        )
    return TrackOut()
