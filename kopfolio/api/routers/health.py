"""Health check endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from typing import Dict

from ..models import HealthStatus
from ..dependencies import get_record_store, get_tracker
from kopfolio.backup import ImportProgressTracker, RecordStore

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthStatus)
async def health_check(
    store: RecordStore = Depends(get_record_store),
    tracker: ImportProgressTracker = Depends(get_tracker),
) -> HealthStatus:
    """Database connectivity and import activity."""
    database_ok = await store.ping()

    return HealthStatus(
        status="healthy" if database_ok else "unhealthy",
        database=database_ok,
        importing=tracker.is_importing,
    )


@router.get("/ready")
async def readiness_probe(store: RecordStore = Depends(get_record_store)) -> Dict[str, str]:
    """Kubernetes readiness probe."""
    if not await store.ping():
        raise HTTPException(status_code=503, detail="Service not ready")
    return {"status": "ready"}


@router.get("/live")
async def liveness_probe() -> Dict[str, str]:
    """Kubernetes liveness probe."""
    return {"status": "alive"}
