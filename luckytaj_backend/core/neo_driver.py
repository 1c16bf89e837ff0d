from __future__ import annotations
import os
from typing import Any, Dict, Optional
from contextlib import contextmanager
from neo4j import GraphDatabase, Driver, Query, Session
from fastapi import Request

NEO4J_CONNECT_TIMEOUT_S = float(os.getenv("NEO4J_CONNECT_TIMEOUT_S", "5"))
NEO4J_QUERY_TIMEOUT_S = float(os.getenv("NEO4J_QUERY_TIMEOUT_S", "5"))

def build_driver(uri: str, user: str, password: str) -> Driver:
    driver = GraphDatabase.driver(
        uri,
        auth=(user, password),
        connection_timeout=NEO4J_CONNECT_TIMEOUT_S,
        connection_acquisition_timeout=NEO4J_CONNECT_TIMEOUT_S,
    )
    # quick connectivity test
    with driver.session() as s:
        s.run("RETURN 1").consume()
    return driver
# luckytaj_backend/core/neo_driver.py

def ensure_constraints(driver: Driver) -> None:
    stmts = [
        "CREATE CONSTRAINT interaction_id IF NOT EXISTS FOR (e:Interaction) REQUIRE e.id IS UNIQUE",
        "CREATE INDEX interaction_ts IF NOT EXISTS FOR (e:Interaction) ON (e.ts)",
        "CREATE INDEX interaction_type_ts IF NOT EXISTS FOR (e:Interaction) ON (e.interaction_type, e.ts)",
        "CREATE INDEX interaction_tip_date IF NOT EXISTS FOR (e:Interaction) ON (e.tip_id, e.date)",
    ]
    with driver.session() as s:
        for q in stmts:
            s.run(q).consume()

def timed(text: str, timeout: Optional[float] = None) -> Query:
    """Wrap Cypher so the server aborts it after the configured timeout."""
    return Query(text, timeout=timeout if timeout is not None else NEO4J_QUERY_TIMEOUT_S)

def run_timed(s: Session, text: str, params: Optional[Dict[str, Any]] = None):
    return s.run(timed(text), params or {})

@contextmanager
def neo_session(driver: Driver):
    with driver.session() as s:
        yield s

# FastAPI dependency: yields a session using app.state.driver
def session_dep(request: Request):
    driver: Driver = request.app.state.driver  # type: ignore[attr-defined]
    with neo_session(driver) as s:
        yield s
