"""
Health and readiness endpoints.

No secrets and no stack traces leave these handlers.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from backend.core.database import get_engine
from backend.core.logging import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

root_router = APIRouter(tags=["health"])

REQUIRED_TABLES = [
    "app_users",
    "plans",
    "user_plans",
    "startups",
    "startup_views",
    "favorites",
]


@root_router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz():
    """Readiness check: DB connectivity + required tables."""
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")

        inspector = inspect(engine)
        missing = [t for t in REQUIRED_TABLES if not inspector.has_table(t)]
        if missing:
            detail = f"missing tables: {', '.join(missing)}"
            logger.warning("[readyz] %s", detail)
            return JSONResponse(status_code=503, content={"status": "error", "detail": detail})

        return {"status": "ok"}
    except Exception as e:
        logger.error("[readyz] readiness check failed: %s", e)
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})
