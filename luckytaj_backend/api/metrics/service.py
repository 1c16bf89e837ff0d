from __future__ import annotations
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from fastapi import Request
from neo4j import Session

from luckytaj_backend.core.neo_driver import run_timed
from .devices import classify_user_agent

Window = Tuple[datetime, datetime]

PURGE_BATCH_SIZE = int(os.getenv("METRICS_PURGE_BATCH_SIZE", "10000"))

# ----------------- helpers -----------------
def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def _ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)

def generate_tip_id(now: Optional[datetime] = None) -> str:
    """tip_YYYYMMDD_NNN with a random 000-999 suffix."""
    now = now or utcnow()
    return f"tip_{now.astimezone(timezone.utc):%Y%m%d}_{secrets.randbelow(1000):03d}"

def window_for_days(days: int, now: Optional[datetime] = None) -> Window:
    end = now or utcnow()
    return end - timedelta(days=days), end

def previous_window(window: Window) -> Window:
    start, end = window
    return start - (end - start), start


@dataclass
class RequestMeta:
    ip_address: str
    user_agent: str = ""
    referrer: str = ""
    page_url: str = ""

def request_meta(req: Request, page_url: Optional[str] = None) -> RequestMeta:
    forwarded = (req.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    ip = forwarded or (req.client.host if req.client else "") or "127.0.0.1"
    return RequestMeta(
        ip_address=ip,
        user_agent=req.headers.get("user-agent", ""),
        referrer=req.headers.get("referer", ""),
        page_url=page_url or "",
    )


# ----------------- write -----------------
def _event_props(
    *,
    kind: str,
    tip_id: str,
    session_id: Optional[str],
    user_id: Optional[str],
    meta: RequestMeta,
    at: datetime,
    time_spent_ms: Optional[int] = None,
    click_url: Optional[str] = None,
    click_target: Optional[str] = None,
) -> Dict[str, Any]:
    device = classify_user_agent(meta.user_agent)
    at = at.astimezone(timezone.utc)
    # neo4j properties must be primitives, so device info is flattened
    return {
        "id": f"ix_{uuid4().hex[:16]}",
        "tip_id": tip_id,
        "session_id": session_id,
        "user_id": user_id,
        "ip_address": meta.ip_address,
        "interaction_type": kind,
        "device_type": device.device_type,
        "os": device.os,
        "browser": device.browser,
        "user_agent": device.user_agent,
        "ts": _ms(at),
        "time_spent_ms": time_spent_ms,
        "click_url": click_url,
        "click_target": click_target,
        "referrer": meta.referrer,
        "page_url": meta.page_url,
        "date": at.strftime("%Y-%m-%d"),
        "hour": at.hour,
    }

def _store(s: Session, props: Dict[str, Any]) -> None:
    run_timed(
        s,
        """
        CREATE (e:Interaction)
        SET e = $props
        """,
        {"props": props},
    ).consume()

def record_view(
    s: Session,
    *,
    tip_id: Optional[str],
    session_id: Optional[str],
    user_id: Optional[str],
    meta: RequestMeta,
    at: Optional[datetime] = None,
) -> str:
    at = at or utcnow()
    tid = tip_id or generate_tip_id(at)
    _store(s, _event_props(
        kind="view", tip_id=tid, session_id=session_id, user_id=user_id, meta=meta, at=at,
    ))
    return tid

def record_click(
    s: Session,
    *,
    tip_id: str,
    session_id: str,
    user_id: Optional[str],
    click_url: Optional[str],
    click_target: Optional[str],
    meta: RequestMeta,
    at: Optional[datetime] = None,
) -> None:
    # no check that the view was recorded first; correlation is best effort
    _store(s, _event_props(
        kind="click", tip_id=tip_id, session_id=session_id, user_id=user_id, meta=meta,
        at=at or utcnow(), click_url=click_url, click_target=click_target,
    ))

def record_time_spent(
    s: Session,
    *,
    tip_id: str,
    session_id: str,
    user_id: Optional[str],
    time_spent_ms: int,
    meta: RequestMeta,
    at: Optional[datetime] = None,
) -> None:
    _store(s, _event_props(
        kind="time_spent", tip_id=tip_id, session_id=session_id, user_id=user_id, meta=meta,
        at=at or utcnow(), time_spent_ms=int(time_spent_ms),
    ))


# ----------------- read (grouped in Cypher) -----------------
def _window_params(window: Window, **extra) -> Dict[str, Any]:
    start, end = window
    return {"start": _ms(start), "end": _ms(end), **extra}

def window_totals(s: Session, window: Window) -> Dict[str, Any]:
    """
    Headline counts for an inclusive window.

    unique_visitors counts distinct (session, tip, date) over views;
    avg_time_ms averages positive time_spent events and is None when there are none.
    """
    rec = run_timed(
        s,
        """
        MATCH (e:Interaction)
        WHERE e.ts >= $start AND e.ts <= $end
        RETURN toInteger(sum(CASE WHEN e.interaction_type = 'view' THEN 1 ELSE 0 END)) AS views,
               toInteger(sum(CASE WHEN e.interaction_type = 'click' THEN 1 ELSE 0 END)) AS clicks,
               toInteger(count(DISTINCT CASE WHEN e.interaction_type = 'view'
                                         THEN [e.session_id, e.tip_id, e.date] END)) AS uniq,
               avg(CASE WHEN e.interaction_type = 'time_spent' AND e.time_spent_ms > 0
                        THEN e.time_spent_ms END) AS avg_time_ms
        """,
        _window_params(window),
    ).single()
    if not rec:
        return {"views": 0, "clicks": 0, "unique_visitors": 0, "avg_time_ms": None}
    return {
        "views": int(rec["views"] or 0),
        "clicks": int(rec["clicks"] or 0),
        "unique_visitors": int(rec["uniq"] or 0),
        "avg_time_ms": rec["avg_time_ms"],
    }

def device_counts(s: Session, window: Window) -> List[Dict[str, Any]]:
    """View counts per device type, largest first."""
    return run_timed(
        s,
        """
        MATCH (e:Interaction)
        WHERE e.ts >= $start AND e.ts <= $end AND e.interaction_type = 'view'
        WITH coalesce(e.device_type, 'desktop') AS device, count(e) AS n
        RETURN device, toInteger(n) AS n
        ORDER BY n DESC, device ASC
        """,
        _window_params(window),
    ).data()

def tip_counts(s: Session, window: Window) -> List[Dict[str, Any]]:
    """Views, clicks and mean time (all time events, zeros included) per tip."""
    return run_timed(
        s,
        """
        MATCH (e:Interaction)
        WHERE e.ts >= $start AND e.ts <= $end AND e.tip_id IS NOT NULL
        WITH e.tip_id AS tip_id,
             sum(CASE WHEN e.interaction_type = 'view' THEN 1 ELSE 0 END) AS views,
             sum(CASE WHEN e.interaction_type = 'click' THEN 1 ELSE 0 END) AS clicks,
             avg(CASE WHEN e.interaction_type = 'time_spent' THEN e.time_spent_ms END) AS avg_time_ms
        RETURN tip_id, toInteger(views) AS views, toInteger(clicks) AS clicks, avg_time_ms
        ORDER BY views DESC, tip_id ASC
        """,
        _window_params(window),
    ).data()

def daily_counts(s: Session, window: Window) -> List[Dict[str, Any]]:
    """Views, clicks and mean time per UTC date, oldest first. Days without events are absent."""
    return run_timed(
        s,
        """
        MATCH (e:Interaction)
        WHERE e.ts >= $start AND e.ts <= $end AND e.date IS NOT NULL
        WITH e.date AS date,
             sum(CASE WHEN e.interaction_type = 'view' THEN 1 ELSE 0 END) AS views,
             sum(CASE WHEN e.interaction_type = 'click' THEN 1 ELSE 0 END) AS clicks,
             avg(CASE WHEN e.interaction_type = 'time_spent' THEN e.time_spent_ms END) AS avg_time_ms
        RETURN date, toInteger(views) AS views, toInteger(clicks) AS clicks, avg_time_ms
        ORDER BY date ASC
        """,
        _window_params(window),
    ).data()

def minute_counts(s: Session, window: Window) -> List[Dict[str, Any]]:
    """Views and clicks per minute-of-hour (UTC)."""
    return run_timed(
        s,
        """
        MATCH (e:Interaction)
        WHERE e.ts >= $start AND e.ts <= $end AND e.interaction_type IN ['view', 'click']
        WITH toInteger((e.ts / 60000) % 60) AS minute,
             sum(CASE WHEN e.interaction_type = 'view' THEN 1 ELSE 0 END) AS views,
             sum(CASE WHEN e.interaction_type = 'click' THEN 1 ELSE 0 END) AS clicks
        RETURN minute, toInteger(views) AS views, toInteger(clicks) AS clicks
        ORDER BY minute ASC
        """,
        _window_params(window),
    ).data()


# ----------------- retention -----------------
def delete_older_than(s: Session, cutoff: datetime, batch_size: int = PURGE_BATCH_SIZE) -> int:
    """Delete in LIMIT-ed batches, one auto-commit transaction each, until a batch comes up short."""
    total = 0
    while True:
        rec = run_timed(
            s,
            """
            MATCH (e:Interaction)
            WHERE e.ts < $cutoff
            WITH e LIMIT $batch
            DETACH DELETE e
            RETURN count(*) AS deleted
            """,
            {"cutoff": _ms(cutoff), "batch": batch_size},
        ).single()
        n = int(rec["deleted"]) if rec and rec["deleted"] is not None else 0
        total += n
        if n < batch_size:
            return total

def purge_interactions(s: Session, days: int, now: Optional[datetime] = None) -> Tuple[int, datetime]:
    """Delete interactions older than `days` days. Returns (deleted, cutoff)."""
    cutoff = (now or utcnow()) - timedelta(days=days)
    return delete_older_than(s, cutoff), cutoff
