"""Admin API endpoints for the sync scheduler."""
from fastapi import APIRouter

from multistore.tasks.scheduler import (
    get_scheduler_status,
    trigger_manual_sync,
    start_scheduler,
    stop_scheduler
)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/scheduler/status")
def scheduler_status():
    """Get scheduler status and last sync results."""
    return get_scheduler_status()


@router.post("/scheduler/start")
def start_scheduler_endpoint():
    """Start the sync scheduler."""
    start_scheduler()
    return {"status": "started"}


@router.post("/scheduler/stop")
def stop_scheduler_endpoint():
    """Stop the sync scheduler."""
    stop_scheduler()
    return {"status": "stopped"}


@router.post("/sync")
def trigger_sync(modified_only: bool = False):
    """Run a sync of all active stores now, outside the schedule."""
    return trigger_manual_sync(modified_only=modified_only)
