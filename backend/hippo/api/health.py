"""Health check endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text

from hippo.config import get_settings
from hippo.database import engine, get_db

router = APIRouter()
settings = get_settings()


@router.get("/health")
@router.head("/health")
async def health_check():
    """Basic health check."""
    return {"status": "healthy", "service": settings.app_name}


@router.get("/health/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """
    Detailed health check including database connectivity.

    Also reports how the record store is bounded: the per-call timeout
    and the connection pool's current state.
    """
    checks = {
        "api": "healthy",
        "database": "unknown"
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {str(e)}"

    # Overall status
    overall_status = "healthy" if all(
        v == "healthy" for v in checks.values()
    ) else "degraded"

    return {
        "status": overall_status,
        "checks": checks,
        "store": {
            "dialect": engine.dialect.name,
            "timeout_seconds": settings.store_timeout_seconds,
            "pool": engine.pool.status()
        }
    }
