"""ADPILOT — Sync Reporting Schemas."""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel


class IdentityOutcome(str, Enum):
    SYNCED = "synced"
    SKIPPED = "skipped"  # no account selection
    FAILED = "failed"


class IdentitySyncResult(BaseModel):
    """What happened to one identity in one cycle."""

    user_id: str
    outcome: IdentityOutcome
    accounts_synced: int = 0
    accounts_failed: int = 0
    campaigns_created: int = 0
    campaigns_updated: int = 0
    errors: List[str] = []

    @property
    def campaigns_synced(self) -> int:
        return self.campaigns_created + self.campaigns_updated


class SyncReport(BaseModel):
    """Summary of one orchestration pass."""

    trigger: str = "scheduled"
    started_at: datetime
    finished_at: Optional[datetime] = None
    identities: List[IdentitySyncResult] = []

    @property
    def synced_users(self) -> int:
        return sum(1 for i in self.identities if i.outcome == IdentityOutcome.SYNCED)

    @property
    def failed_users(self) -> int:
        return sum(1 for i in self.identities if i.outcome == IdentityOutcome.FAILED)

    @property
    def synced_accounts(self) -> int:
        return sum(i.accounts_synced for i in self.identities)

    @property
    def failed_accounts(self) -> int:
        return sum(i.accounts_failed for i in self.identities)

    @property
    def synced_campaigns(self) -> int:
        return sum(i.campaigns_synced for i in self.identities)


class SchedulerState(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    RUNNING = "running"


class SyncStatus(BaseModel):
    """Response for GET /sync/status."""

    last_sync: Optional[datetime] = None
    next_sync: Optional[datetime] = None
    status: str = "scheduled"  # "scheduled" | "error"
    state: SchedulerState = SchedulerState.IDLE


class ManualSyncResult(BaseModel):
    """Response for POST /sync/trigger."""

    success: bool
    message: str
    synced_users: int = 0
    synced_accounts: Optional[int] = None
    synced_campaigns: Optional[int] = None
