from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from product_api.database import Database, get_database

router = APIRouter(prefix="/health", tags=["Health"])


@router.get(
    "",
    summary="Health check",
    description="Basic liveness endpoint."
)
async def health_check():
    """Simple health check."""
    return {
        "success": True,
        "message": "API is running",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the database is reachable."
)
async def readiness_check(database: Database = Depends(get_database)):
    """
    Readiness check for the database connection.
    """
    checks = {"database": False}

    try:
        await database.ping()
        checks["database"] = True
    except (SQLAlchemyError, OSError) as e:
        checks["database_error"] = str(e)

    return {
        "success": checks["database"],
        "message": "ready" if checks["database"] else "not_ready",
        "checks": checks
    }
