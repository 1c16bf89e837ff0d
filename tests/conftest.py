from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from neo4j.exceptions import ServiceUnavailable

from luckytaj_backend.core.admin_guard import mint_admin_token
from luckytaj_backend.core.neo_driver import session_dep
from luckytaj_backend.main import create_app


class FakeResult:
    def __init__(self, records: List[Dict[str, Any]]):
        self._records = records

    def data(self) -> List[Dict[str, Any]]:
        return [dict(r) for r in self._records]

    def single(self) -> Optional[Dict[str, Any]]:
        return dict(self._records[0]) if self._records else None

    def consume(self) -> None:
        return None

def _avg(values: List[int]) -> Optional[float]:
    return sum(values) / len(values) if values else None

class FakeSession:
    """
    In-memory stand-in for a neo4j Session. It understands the statements the
    metrics service issues and answers the grouped reads with grouped rows,
    the way the database would.
    """

    def __init__(self):
        self.nodes: List[Dict[str, Any]] = []
        self.down = False
        self.queries: List[Any] = []
        self.rows_returned = 0

    def run(self, query, parameters=None, **kwargs):
        self.queries.append(query)
        if self.down:
            raise ServiceUnavailable("database is down")
        text = getattr(query, "text", query)
        params = {**(parameters or {}), **kwargs}
        rows = self._answer(text, params)
        self.rows_returned += len(rows)
        return FakeResult(rows)

    def _in_window(self, params, kinds=None):
        return [
            n for n in sorted(self.nodes, key=lambda n: n["ts"])
            if params["start"] <= n["ts"] <= params["end"]
            and (kinds is None or n["interaction_type"] in kinds)
        ]

    @staticmethod
    def _group(nodes, key):
        groups: Dict[Any, List[Dict[str, Any]]] = {}
        for n in nodes:
            groups.setdefault(key(n), []).append(n)
        return {
            k: {
                "views": sum(1 for n in g if n["interaction_type"] == "view"),
                "clicks": sum(1 for n in g if n["interaction_type"] == "click"),
                "avg_time_ms": _avg([
                    n["time_spent_ms"] for n in g
                    if n["interaction_type"] == "time_spent" and n.get("time_spent_ms") is not None
                ]),
            }
            for k, g in groups.items()
        }

    def _answer(self, text: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        if "CREATE (e:Interaction)" in text:
            self.nodes.append(dict(params["props"]))
            return []

        if "DETACH DELETE" in text:
            doomed = [n for n in self.nodes if n["ts"] < params["cutoff"]][: params["batch"]]
            self.nodes = [n for n in self.nodes if not any(n is d for d in doomed)]
            return [{"deleted": len(doomed)}]

        if "AS uniq" in text:
            nodes = self._in_window(params)
            views = [n for n in nodes if n["interaction_type"] == "view"]
            spent = [
                n["time_spent_ms"] for n in nodes
                if n["interaction_type"] == "time_spent" and (n.get("time_spent_ms") or 0) > 0
            ]
            return [{
                "views": len(views),
                "clicks": sum(1 for n in nodes if n["interaction_type"] == "click"),
                "uniq": len({(n.get("session_id"), n.get("tip_id"), n.get("date")) for n in views}),
                "avg_time_ms": _avg(spent),
            }]

        if "AS device" in text:
            counts: Dict[str, int] = {}
            for n in self._in_window(params, ["view"]):
                device = n.get("device_type") or "desktop"
                counts[device] = counts.get(device, 0) + 1
            return [
                {"device": d, "n": c}
                for d, c in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
            ]

        if "AS tip_id" in text:
            nodes = [n for n in self._in_window(params) if n.get("tip_id") is not None]
            grouped = self._group(nodes, lambda n: n["tip_id"])
            rows = [{"tip_id": k, **v} for k, v in grouped.items()]
            return sorted(rows, key=lambda r: (-r["views"], r["tip_id"]))

        if "AS date" in text:
            nodes = [n for n in self._in_window(params) if n.get("date")]
            grouped = self._group(nodes, lambda n: n["date"])
            return [{"date": k, **grouped[k]} for k in sorted(grouped)]

        if "AS minute" in text:
            nodes = self._in_window(params, ["view", "click"])
            grouped = self._group(nodes, lambda n: (n["ts"] // 60000) % 60)
            return [
                {"minute": k, "views": grouped[k]["views"], "clicks": grouped[k]["clicks"]}
                for k in sorted(grouped)
            ]

        raise AssertionError(f"unexpected query: {text}")

@pytest.fixture
def store() -> FakeSession:
    return FakeSession()

@pytest.fixture
def app(store):
    app = create_app(use_lifespan=False)

    def _session():
        yield store

    app.dependency_overrides[session_dep] = _session
    return app

@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)

@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {mint_admin_token('ops@luckytaj.example')}"}

@pytest.fixture
def games_file(tmp_path, monkeypatch):
    """Point the games pool at a temp file and return a writer for it."""
    import json
    from luckytaj_backend.api.games import service as games_service

    path = tmp_path / "games-data.json"
    monkeypatch.setattr(games_service, "GAMES_DATA_PATH", path)

    def write(pool):
        path.write_text(json.dumps({"gamesPool": pool}), encoding="utf-8")
        return path

    return write
