"""
SafeOrder Trainer — FastAPI application entry point.
Lifespan: create DB tables → verify connectivity → load the scenario manifest.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from safeorder.config import settings
from safeorder.database import engine
from safeorder.models import Base
from safeorder.routers import health, scenarios, sessions

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan handler.
    1. Create the training_sessions table (idempotent — IF NOT EXISTS).
    2. Verify DB connectivity.
    3. Load the scenario manifest so a broken manifest fails at startup.
    """
    logger.info("Starting SafeOrder Trainer (env=%s)", settings.app_env)

    # Step 1: create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created/verified.")

    # Step 2: connectivity check
    from safeorder.database import check_db_connectivity
    ok = await check_db_connectivity()
    if not ok:
        logger.error("Database connectivity check FAILED at startup.")
    else:
        logger.info("Database connectivity verified.")

    # Step 3: scenario manifest
    from safeorder.services.session_manager import get_session_manager
    loaded = await get_session_manager().loader.list_scenarios()
    logger.info("Loaded %d training scenarios.", len(loaded))

    yield

    logger.info("Shutting down SafeOrder Trainer.")
    await engine.dispose()


app = FastAPI(
    title="SafeOrder Trainer",
    description="Restaurant ordering practice for people with food allergies.",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(scenarios.router)
app.include_router(sessions.router)


# ── Global exception handler ─────────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a machine-readable error for any unhandled exception."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "TRAINER_UNAVAILABLE"},
    )
