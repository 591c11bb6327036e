"""ADPILOT — Sync Scheduler Routes."""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.models.sync_models import ManualSyncResult, SyncStatus
from app.scheduler.jobs import SyncScheduler, sync_scheduler
from app.core.logging import get_logger

logger = get_logger("api.sync")

router = APIRouter(prefix="/sync", tags=["Sync"])


def get_scheduler() -> SyncScheduler:
    return sync_scheduler


@router.get("/status", response_model=SyncStatus)
async def sync_status(
    scheduler: SyncScheduler = Depends(get_scheduler),
    session: Session = Depends(get_session),
):
    """Last and next sync times plus the scheduler state."""
    return scheduler.get_status(session)


@router.post("/trigger", response_model=ManualSyncResult)
async def trigger_sync(scheduler: SyncScheduler = Depends(get_scheduler)):
    """Run a sync pass now. Rejected while another pass is in flight."""
    logger.info("Manual sync requested", extra={"trigger": "manual"})
    return await scheduler.trigger_manual_sync()
