from __future__ import annotations
import json
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from luckytaj_backend.core.paths import GAMES_DATA_PATH
from .rotation import day_index, day_start, next_rotation_at, select_daily, start_index
from .schema import GamePoolEntry

log = logging.getLogger("games")

DAILY_GAMES_COUNT = int(os.getenv("DAILY_GAMES_COUNT", "3"))

_IMAGE_EXT = re.compile(r"\.(jpg|jpeg|png|webp|gif)$", re.I)


# ----------------- helpers -----------------
def _normalize_image(image: str) -> str:
    # pool files written by the old admin kept "images/x.jpg"; the site serves from root
    if image and image.startswith("images/"):
        return "/" + image
    return image

def _slug_from_image(image: str) -> str:
    stem = _IMAGE_EXT.sub("", image.rsplit("/", 1)[-1])
    return re.sub(r"[^a-z0-9]+", "-", stem.lower()).strip("-")

def _title_from_image(image: str) -> str:
    stem = _IMAGE_EXT.sub("", image.rsplit("/", 1)[-1])
    return " ".join(w.capitalize() for w in stem.replace("_", "-").split("-") if w)

def _shape_entry(raw: Dict[str, Any], position: int) -> Optional[GamePoolEntry]:
    try:
        entry = GamePoolEntry.model_validate(raw)
    except ValidationError as e:
        log.warning("skipping games pool entry #%d: %s", position, e.errors()[0].get("msg"))
        return None
    entry.image = _normalize_image(entry.image)
    if not entry.title and entry.image:
        entry.title = _title_from_image(entry.image)
    if not entry.id:
        entry.id = _slug_from_image(entry.image) or f"game-{position}"
    return entry


# ----------------- pool -----------------
def load_games_pool(path: Union[str, Path, None] = None) -> List[GamePoolEntry]:
    """
    Read `{"gamesPool": [...]}` from disk. The file is re-read on every call so
    admin edits show up without a restart. A missing or broken file yields an
    empty pool.
    """
    p = Path(path) if path is not None else GAMES_DATA_PATH
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError:
        log.warning("games pool file not found: %s", p)
        return []
    except (OSError, json.JSONDecodeError) as e:
        log.warning("games pool file unreadable (%s): %s", p, e)
        return []

    raw_pool = data.get("gamesPool") if isinstance(data, dict) else None
    if not isinstance(raw_pool, list):
        log.warning("games pool file has no gamesPool list: %s", p)
        return []

    out: List[GamePoolEntry] = []
    for i, raw in enumerate(raw_pool):
        if not isinstance(raw, dict):
            continue
        entry = _shape_entry(raw, i)
        if entry is not None:
            out.append(entry)
    return out


# ----------------- selection -----------------
def daily_games(pool: List[GamePoolEntry], now: datetime, count: Optional[int] = None) -> Dict[str, Any]:
    k = DAILY_GAMES_COUNT if count is None else count
    day = day_index(now)
    return {
        "day_index": day,
        "date": day_start(day).date().isoformat(),
        "games": select_daily(pool, k, now),
    }

def games_status(pool: List[GamePoolEntry], now: datetime) -> Dict[str, Any]:
    return {
        "total_games": len(pool),
        "configured_games": min(DAILY_GAMES_COUNT, len(pool)),
        "day_index": day_index(now),
        "start_index": start_index(len(pool), now),
        "next_rotation_at": next_rotation_at(now).isoformat(),
    }
