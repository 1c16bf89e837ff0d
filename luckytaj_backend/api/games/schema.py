from __future__ import annotations
from typing import List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RecentWin(BaseModel):
    amount: str = ""
    player: str = ""
    comment: str = ""


class GamePoolEntry(BaseModel):
    # games-data.json uses title/image; older exports used displayTitle/imageRef
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    title: str = Field(default="", validation_alias=AliasChoices("title", "displayTitle"))
    image: str = Field(default="", validation_alias=AliasChoices("image", "imageRef"))
    recent_win: RecentWin = Field(
        default_factory=RecentWin,
        validation_alias=AliasChoices("recentWin", "recent_win"),
        serialization_alias="recentWin",
    )


class GamesPoolOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    games_pool: List[GamePoolEntry]


class DailyGamesOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    day_index: int
    date: str                   # YYYY-MM-DD (UTC) of day_index
    games: List[GamePoolEntry]


class GamesStatusOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_games: int
    configured_games: int
    day_index: int
    start_index: int
    next_rotation_at: str       # ISO datetime
