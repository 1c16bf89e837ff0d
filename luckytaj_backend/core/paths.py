# luckytaj_backend/core/paths.py
from __future__ import annotations
import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_GAMES_DATA_PATH = PROJECT_ROOT / "data" / "games-data.json"

# Allow env override but resolve to absolute; the file itself may be missing
GAMES_DATA_PATH = Path(os.getenv("GAMES_DATA_PATH", str(DEFAULT_GAMES_DATA_PATH))).resolve()
