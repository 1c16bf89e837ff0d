from __future__ import annotations
from typing import Dict, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Camel(BaseModel):
    # wire format is camelCase (tipId, sessionId, ...); python side stays snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Ingestion payloads ----------
class TrackViewIn(_Camel):
    tip_id: Optional[str] = None
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    page_url: Optional[str] = None

class TrackClickIn(_Camel):
    tip_id: str = Field(min_length=1, max_length=128)
    session_id: str = Field(min_length=1, max_length=128)
    user_id: Optional[str] = None
    click_url: Optional[str] = None
    click_target: Optional[str] = None
    page_url: Optional[str] = None

class TrackTimeIn(_Camel):
    tip_id: str = Field(min_length=1, max_length=128)
    session_id: str = Field(min_length=1, max_length=128)
    user_id: Optional[str] = None
    time_spent_ms: int = Field(ge=0)
    page_url: Optional[str] = None


# ---------- Ingestion responses ----------
class TrackViewOut(_Camel):
    success: bool = True
    tip_id: str
    warning: Optional[str] = None

class TrackOut(_Camel):
    success: bool = True


# ---------- Dashboard ----------
class MetricChange(_Camel):
    value: Union[int, float]
    change: Union[int, float]

class OverviewOut(_Camel):
    total_views: MetricChange
    unique_visitors: MetricChange
    click_through_rate: MetricChange
    avg_time_on_page: MetricChange

class DeviceShare(_Camel):
    count: int
    percentage: float

DeviceDistributionOut = Dict[str, DeviceShare]

class TipPerformanceRow(_Camel):
    tip_id: str
    views: int = 0
    clicks: int = 0
    ctr: float = 0.0
    avg_time_seconds: Optional[int] = None   # null when the tip has no time events

class TrendRow(_Camel):
    date: str                    # YYYY-MM-DD (UTC)
    views: int = 0
    clicks: int = 0
    avg_time_ms: Optional[int] = None

class RealtimeRow(_Camel):
    minute: int                  # 0..59
    views: int = 0
    clicks: int = 0

class CleanupOut(_Camel):
    success: bool = True
    deleted_count: int
