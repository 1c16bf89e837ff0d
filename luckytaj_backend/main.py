# luckytaj_backend/main.py
from __future__ import annotations

# --- .env loading (from this directory) ---------------------------------------
import os
from dotenv import load_dotenv

dotenv_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env")
load_dotenv(dotenv_path=dotenv_path)

# --- std/3rd party imports ----------------------------------------------------
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from neo4j import Driver
from neo4j.exceptions import DriverError, Neo4jError

# --- internal imports ---------------------------------------------------------
from luckytaj_backend.core.neo_driver import build_driver, ensure_constraints
from luckytaj_backend.api import games, metrics
from luckytaj_backend.api.metrics.service import purge_interactions

# --- config -------------------------------------------------------------------
API_PORT = int(os.getenv("API_PORT", "8000"))
NEO4J_URI = os.getenv("NEO4J_URI")
NEO4J_USER = os.getenv("NEO4J_USER")
NEO4J_PASSWORD = os.getenv("NEO4J_PASSWORD")
ALLOWED_ORIGINS = [
    o.strip()
    for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
    if o.strip()
]
ERROR_DETAIL = os.getenv("ERROR_DETAIL", "verbose").lower()  # "verbose" | "minimal"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
# unset = no scheduled retention; cleanup then only happens via DELETE /metrics/cleanup
METRICS_RETENTION_DAYS: Optional[int] = (
    int(os.environ["METRICS_RETENTION_DAYS"]) if os.getenv("METRICS_RETENTION_DAYS") else None
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
log = logging.getLogger("lifespan")


# --- retention job ------------------------------------------------------------
def _start_retention_scheduler(driver: Driver, days: int) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")

    def run_retention():
        try:
            with driver.session() as s:
                deleted, cutoff = purge_interactions(s, days)
            if deleted:
                log.info("[retention] purged %d interactions older than %s", deleted, cutoff.date())
        except Exception:
            # keep errors from crashing the scheduler
            log.exception("[retention] error")

    # daily, a few minutes after the rotation flips at UTC midnight
    scheduler.add_job(
        run_retention,
        trigger="cron",
        hour=0,
        minute=7,
        id="metrics_retention",
        replace_existing=True,
        misfire_grace_time=300,
    )
    scheduler.start()
    return scheduler


# --- lifespan: connect to Neo4j and ensure indexes ----------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    driver: Driver = build_driver(NEO4J_URI, NEO4J_USER, NEO4J_PASSWORD)
    ensure_constraints(driver)
    app.state.driver = driver
    log.info("Neo4j connected & interaction indexes ensured")

    scheduler = None
    if METRICS_RETENTION_DAYS is not None:
        scheduler = _start_retention_scheduler(driver, METRICS_RETENTION_DAYS)
        log.info("retention job scheduled (%d days)", METRICS_RETENTION_DAYS)
    app.state.scheduler = scheduler

    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)
        driver.close()
        log.info("driver closed")


# --- error handlers -----------------------------------------------------------
def _error_body(request: Request, error: str, **extra) -> dict:
    return {
        "ok": False,
        "error": error,
        "path": str(request.url),
        "method": request.method,
        **extra,
    }

def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def friendly_400(request: Request, exc: RequestValidationError):
        errors = []
        for e in exc.errors():
            loc = e.get("loc", [])
            field = ".".join(str(x) for x in loc if isinstance(x, (str, int)))
            if field.startswith("body."):
                field = field[5:]
            errors.append({"field": field, "message": e.get("msg", "Invalid value")})

        summary = ", ".join(f"{e['field']}: {e['message']}" for e in errors if e["field"])
        return JSONResponse(
            status_code=HTTP_400_BAD_REQUEST,
            content=_error_body(
                request, "Validation failed", details=errors, message=summary or "Invalid input",
            ),
        )

    @app.exception_handler(Neo4jError)
    @app.exception_handler(DriverError)
    async def friendly_db_error(request: Request, exc: Exception):
        logging.getLogger("api").error(
            "database error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc,
        )
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                request, "Database error",
                message=str(exc) if ERROR_DETAIL == "verbose" else "Please try again.",
            ),
        )

    @app.exception_handler(Exception)
    async def friendly_generic_error(request: Request, exc: Exception):
        logging.getLogger("api").error(
            "unhandled error on %s %s", request.method, request.url.path, exc_info=exc,
        )
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, "Server error", message="Something went wrong. Please try again."),
        )


# --- app factory --------------------------------------------------------------
def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="LuckyTaj Site Backend",
        version="0.1.0",
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*", "Authorization", "X-Auth-Token"],
    )

    app.include_router(games.router)
    app.include_router(metrics.router)
    # the landing page and the admin panel call /api/...
    app.include_router(games.router, prefix="/api", include_in_schema=False)
    app.include_router(metrics.router, prefix="/api", include_in_schema=False)

    install_error_handlers(app)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app

# --- ASGI app -----------------------------------------------------------------
app = create_app()

# --- dev entry ----------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("luckytaj_backend.main:app", host="0.0.0.0", port=API_PORT, reload=True)
