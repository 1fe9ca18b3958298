"""Health check and welcome endpoints.

Learn: /health verifies the server is running and whether its
dependencies (database, Redis) are reachable. Redis is optional, so
only a database failure makes the service "degraded".
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from sqlalchemy import text

from deepresearch import __version__
from deepresearch.cache import get_redis
from deepresearch.db.engine import engine

router = APIRouter()


@router.get("/")
async def home():
    return {
        "message": "Welcome to the DeepResearch API",
        "version": __version__,
        "docs": "/docs",
    }


@router.get("/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {
        "server": "ok",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
    }

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e.__class__.__name__}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception:
        checks["redis"] = "unavailable"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
