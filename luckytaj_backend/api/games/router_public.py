from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Query

from .schema import DailyGamesOut, GamesPoolOut
from .service import daily_games, load_games_pool

router = APIRouter(prefix="/games", tags=["games"])

# ---------- Public ----------
@router.get("/pool", response_model=GamesPoolOut)
def r_games_pool():
    return {"games_pool": load_games_pool()}

@router.get("/daily", response_model=DailyGamesOut)
def r_daily_games(count: Optional[int] = Query(default=None, ge=1, le=12)):
    """Today's trending games; identical for every visitor until UTC midnight."""
    return daily_games(load_games_pool(), datetime.now(timezone.utc), count)
