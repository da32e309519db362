"""
Metrics API

Dashboard KPIs for a business selection, and stored monthly snapshots.
"""
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from opsmetrics.connectors.base import DataProvider
from opsmetrics.connectors.sql_provider import SqlDataProvider
from opsmetrics.metrics.errors import InvalidSelectionError, MetricsFetchError
from opsmetrics.metrics.periods import DateRange
from opsmetrics.models.base import get_db
from opsmetrics.services.metrics_service import MetricsService
from opsmetrics.services.snapshot_service import MetricsSnapshotService
from opsmetrics.utils.logger import log

router = APIRouter(prefix="/metrics", tags=["metrics"])


class RefreshRequest(BaseModel):
    business_id: str
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)


def get_provider() -> DataProvider:
    """Data provider for request handlers"""
    return SqlDataProvider()


def parse_business_ids(raw: str) -> List[str]:
    """Comma-separated ids, blanks dropped, order kept"""
    ids = [part.strip() for part in (raw or "").split(",")]
    return list(dict.fromkeys(i for i in ids if i))


@router.get("/summary")
async def get_summary(
    business_ids: str = Query(..., description="Comma-separated business ids"),
    start: date = Query(..., description="Period start (inclusive)"),
    end: date = Query(..., description="Period end (inclusive)"),
    provider: DataProvider = Depends(get_provider),
):
    """Dashboard KPIs, comparisons and trailing chart for a business selection."""
    ids = parse_business_ids(business_ids)
    try:
        if not ids:
            raise InvalidSelectionError("Select at least one business")
        period = DateRange(start, end)
        result = await MetricsService(provider).compute(ids, period)
    except InvalidSelectionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MetricsFetchError as e:
        log.error(f"Metrics summary failed: {e}")
        raise HTTPException(status_code=503, detail=f"Metrics data is temporarily unavailable, retry shortly ({e.stage})")

    return {
        "success": True,
        "data": result.to_dict(),
    }


@router.post("/refresh")
async def refresh_snapshot(
    request: RefreshRequest,
    db: Session = Depends(get_db),
    provider: DataProvider = Depends(get_provider),
):
    """Recalculate and store the monthly snapshot for one business."""
    service = MetricsSnapshotService(db, provider)
    try:
        data = await service.refresh(request.business_id, request.year, request.month)
    except InvalidSelectionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MetricsFetchError as e:
        log.error(f"Snapshot refresh failed for {request.business_id}: {e}")
        raise HTTPException(status_code=503, detail=f"Metrics data is temporarily unavailable, retry shortly ({e.stage})")

    return {
        "success": True,
        "data": data,
    }


@router.get("/snapshots/{business_id}")
async def get_snapshots(
    business_id: str,
    months: int = Query(6, ge=1, le=60, description="Number of months to return"),
    db: Session = Depends(get_db),
    provider: DataProvider = Depends(get_provider),
):
    """Stored snapshots for the last N months, oldest first."""
    service = MetricsSnapshotService(db, provider)
    data = service.get_snapshots(business_id, months)
    return {
        "success": True,
        "data": {
            "months": data,
            "count": len(data),
        }
    }
