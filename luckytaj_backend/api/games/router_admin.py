from __future__ import annotations
from datetime import date, datetime, time, timezone
from typing import Optional
from fastapi import APIRouter, Depends, Query

from luckytaj_backend.core.admin_guard import require_admin
from .schema import DailyGamesOut, GamesStatusOut
from .service import daily_games, games_status, load_games_pool

router = APIRouter(prefix="/games", tags=["admin-games"])

@router.get("/daily/preview", response_model=DailyGamesOut)
def r_preview_daily_games(
    day: Optional[date] = Query(default=None, alias="date"),
    count: Optional[int] = Query(default=None, ge=1, le=12),
    admin: str = Depends(require_admin),
):
    # noon UTC sits safely inside the requested day index
    when = (
        datetime.combine(day, time(12, 0), tzinfo=timezone.utc)
        if day is not None
        else datetime.now(timezone.utc)
    )
    return daily_games(load_games_pool(), when, count)

@router.get("/status", response_model=GamesStatusOut)
def r_games_status(admin: str = Depends(require_admin)):
    return games_status(load_games_pool(), datetime.now(timezone.utc))
