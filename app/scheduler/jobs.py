"""ADPILOT — Scheduler Jobs.

APScheduler daily job that runs the campaign sync pass at the configured
local wall-clock time. Manual triggers run the same pass out-of-band; only one
pass may be in flight at a time and a second request is rejected, not queued.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlmodel import Session

from app.config import settings
from app.core import audit
from app.core.audit import AuditSink
from app.core.errors import SchedulerAlreadyStartedError, SyncInProgressError
from app.core.logging import get_logger
from app.core.timeutils import ensure_utc, utcnow
from app.database import engine
from app.models.sync_models import (
    ManualSyncResult,
    SchedulerState,
    SyncReport,
    SyncStatus,
)
from app.sync.orchestrator import SyncOrchestrator

logger = get_logger("scheduler")

JOB_ID = "daily_campaign_sync"
ALREADY_RUNNING = "Sync already running"

SyncRunner = Callable[[str], Awaitable[SyncReport]]


def compute_next_run(now: datetime, hour: int, minute: int, tz: str) -> datetime:
    """Next occurrence of hour:minute local time in `tz`, strictly after `now`."""
    local_now = ensure_utc(now).astimezone(ZoneInfo(tz))
    candidate = local_now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= local_now:
        candidate = candidate + timedelta(days=1)
    return candidate


async def run_daily_sync(trigger: str = "scheduled") -> SyncReport:
    """Open a session and run one orchestrator pass over all identities."""
    with Session(engine) as session:
        return await SyncOrchestrator(session).run_cycle(trigger=trigger)


class SyncScheduler:
    """Owns the daily job and the in-flight guard for sync passes."""

    def __init__(
        self,
        runner: Optional[SyncRunner] = None,
        hour: Optional[int] = None,
        minute: Optional[int] = None,
        timezone: Optional[str] = None,
    ):
        self.runner = runner or run_daily_sync
        self.hour = settings.sync_hour if hour is None else hour
        self.minute = settings.sync_minute if minute is None else minute
        self.timezone = timezone or settings.scheduler_timezone
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._lock = asyncio.Lock()
        self.state = SchedulerState.IDLE
        self.status = "scheduled"
        self.last_sync: Optional[datetime] = None
        self.last_error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> datetime:
        """Arm the daily job. Returns the first fire time."""
        if self.running:
            raise SchedulerAlreadyStartedError("Scheduler already started")

        first_run = compute_next_run(utcnow(), self.hour, self.minute, self.timezone)
        self._scheduler = AsyncIOScheduler(timezone=ZoneInfo(self.timezone))
        self._scheduler.add_job(
            self._scheduled_run,
            "interval",
            hours=24,
            start_date=first_run,
            id=JOB_ID,
            replace_existing=True,
            misfire_grace_time=3600,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        self.state = SchedulerState.WAITING
        logger.info(
            f"⏰ Scheduler started. Daily sync at {self.hour:02d}:{self.minute:02d} "
            f"{self.timezone}, first run {first_run.isoformat()}"
        )
        return first_run

    def stop(self) -> None:
        """Shutdown the scheduler gracefully."""
        if self.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self._scheduler = None
        self.state = SchedulerState.IDLE

    def next_run_time(self) -> Optional[datetime]:
        if not self.running:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    async def _execute(self, trigger: str) -> Optional[SyncReport]:
        """Run one pass, or return None if another pass holds the lock."""
        if self._lock.locked():
            return None
        async with self._lock:
            self.state = SchedulerState.RUNNING
            try:
                report = await self.runner(trigger)
                self.last_sync = report.finished_at or utcnow()
                self.status = "scheduled"
                self.last_error = None
                return report
            except Exception as e:
                # The job stays registered; the next fire retries.
                logger.exception(f"Sync pass failed: {e}", extra={"trigger": trigger})
                self.status = "error"
                self.last_error = str(e)
                return None
            finally:
                self.state = SchedulerState.WAITING if self.running else SchedulerState.IDLE

    async def run_exclusive(
        self, trigger: str, work: Callable[[], Awaitable[SyncReport]]
    ) -> SyncReport:
        """Run an out-of-band pass (e.g. an account refresh) under the sync lock.

        Raises SyncInProgressError instead of waiting when a pass is in flight.
        Failures propagate to the caller and leave the scheduled job's status alone.
        """
        if self._lock.locked():
            raise SyncInProgressError(ALREADY_RUNNING)
        async with self._lock:
            self.state = SchedulerState.RUNNING
            logger.info("Exclusive sync pass started", extra={"trigger": trigger})
            try:
                report = await work()
            finally:
                self.state = SchedulerState.WAITING if self.running else SchedulerState.IDLE
            self.last_sync = report.finished_at or utcnow()
            return report

    async def _scheduled_run(self) -> None:
        if self._lock.locked():
            logger.warning(
                "Scheduled sync skipped: previous pass still running",
                extra={"trigger": "scheduled"},
            )
            return
        await self._execute("scheduled")

    async def trigger_manual_sync(self) -> ManualSyncResult:
        """Run a pass now without touching the scheduled job."""
        if self._lock.locked():
            return ManualSyncResult(success=False, message=ALREADY_RUNNING)

        report = await self._execute("manual")
        if report is None:
            if self.last_error is None:
                return ManualSyncResult(success=False, message=ALREADY_RUNNING)
            return ManualSyncResult(
                success=False, message=f"Sync failed: {self.last_error}"
            )
        return ManualSyncResult(
            success=True,
            message="Sync completed",
            synced_users=report.synced_users,
            synced_accounts=report.synced_accounts,
            synced_campaigns=report.synced_campaigns,
        )

    def get_status(self, session: Optional[Session] = None) -> SyncStatus:
        last_sync = self.last_sync
        if last_sync is None and session is not None:
            last_sync = AuditSink(session).latest_timestamp(audit.SYNC_COMPLETED)
        return SyncStatus(
            last_sync=ensure_utc(last_sync),
            next_sync=self.next_run_time(),
            status=self.status,
            state=self.state,
        )


sync_scheduler = SyncScheduler()


def start_scheduler() -> None:
    """Start the process-wide scheduler unless disabled via config."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return
    sync_scheduler.start()


def stop_scheduler() -> None:
    sync_scheduler.stop()
