"""
Health and engine status endpoints

/health answers as long as the app is up. /status checks the database the metrics
provider and snapshots read from, and reports the stored snapshot state.
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsmetrics import __version__
from opsmetrics.config import get_settings
from opsmetrics.models.base import get_db
from opsmetrics.models.monthly_metrics import BusinessMonthlyMetrics
from opsmetrics.utils.logger import log

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__
    }


def database_status(db: Session) -> dict:
    """Reachability plus snapshot count and last refresh time"""
    try:
        db.execute(text("SELECT 1"))
        snapshot_count, last_computed = db.query(
            func.count(BusinessMonthlyMetrics.id),
            func.max(BusinessMonthlyMetrics.computed_at),
        ).one()
    except SQLAlchemyError as e:
        log.warning(f"Status check could not reach the database: {e}")
        return {"reachable": False, "error": str(e)}

    return {
        "reachable": True,
        "snapshot_count": snapshot_count,
        "last_snapshot_at": last_computed.isoformat() if last_computed else None,
    }


@router.get("/status")
async def get_status(db: Session = Depends(get_db)):
    """Engine status: database reachability, snapshots and fetch settings"""
    settings = get_settings()
    database = database_status(db)
    return {
        "app_name": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "status": "ok" if database["reachable"] else "degraded",
        "database": database,
        "fetch": {
            "batch_timeout_seconds": settings.fetch_batch_timeout_seconds,
            "trailing_chart_months": settings.trailing_chart_months,
            "use_unit_cost_snapshot": settings.use_unit_cost_snapshot,
        },
        "timestamp": datetime.utcnow().isoformat()
    }
