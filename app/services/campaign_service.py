"""ADPILOT — Campaign Service.

Owner-facing operations on the local campaign store: goals, account
selection, disconnect and a forced refresh.
"""

from typing import Callable, Dict, List, Optional, Sequence

from sqlmodel import Session

from app.core import audit
from app.core.audit import AuditSink
from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.models.campaign_models import Campaign, CampaignGoalsUpdate
from app.models.sync_models import SyncReport
from app.scheduler.jobs import SyncScheduler, sync_scheduler
from app.sync.orchestrator import SyncOrchestrator
from app.sync.store import CampaignStore, CredentialStore

logger = get_logger("campaigns")

OrchestratorFactory = Callable[[Session], SyncOrchestrator]


class CampaignService:
    def __init__(
        self,
        session: Session,
        orchestrator_factory: Optional[OrchestratorFactory] = None,
        scheduler: Optional[SyncScheduler] = None,
    ):
        self.session = session
        self.store = CampaignStore(session)
        self.credentials = CredentialStore(session)
        self.audit = AuditSink(session)
        self.orchestrator_factory = orchestrator_factory or SyncOrchestrator
        self.scheduler = scheduler or sync_scheduler

    def list_campaigns(
        self, user_id: str, account_ids: Optional[Sequence[str]] = None
    ) -> List[Campaign]:
        return self.store.list_campaigns(user_id, account_ids)

    def update_goals(
        self, campaign_id: int, user_id: str, goals: CampaignGoalsUpdate
    ) -> Campaign:
        """Set owner goals. Only fields present in the update are touched."""
        campaign = self.store.get_campaign(campaign_id, user_id)
        if campaign is None:
            raise NotFoundError(f"Campaign {campaign_id} not found")

        changes = goals.model_dump(exclude_unset=True)
        for field in ("target_cpa", "target_roas"):
            value = changes.get(field)
            if value is not None and value < 0:
                raise ValueError(f"{field} cannot be negative")
        for field, value in changes.items():
            setattr(campaign, field, value)

        self.session.add(campaign)
        self.session.commit()
        self.session.refresh(campaign)
        self.audit.record(
            user_id,
            audit.CAMPAIGN_GOALS_UPDATED,
            changes,
            performed_by=user_id,
            campaign_id=campaign.id,
        )
        self.session.refresh(campaign)
        return campaign

    def set_selection(self, user_id: str, account_ids: Sequence[str]) -> List[str]:
        selected = self.store.set_selected_accounts(user_id, account_ids)
        logger.info(f"Selected {len(selected)} accounts", extra={"user_id": user_id})
        return selected

    def disconnect(self, user_id: str) -> Dict[str, int]:
        """Deactivate the connection and drop everything synced from it."""
        connections = self.credentials.deactivate(user_id)
        campaigns = self.store.clear_campaigns(user_id)
        self.store.delete_accounts(user_id)
        self.store.set_selected_accounts(user_id, [])
        self.audit.record(
            user_id,
            audit.ACCOUNT_DISCONNECTED,
            {"connections": connections, "campaignsRemoved": campaigns},
            performed_by=user_id,
        )
        logger.info(
            f"🔌 Disconnected: {connections} connections, {campaigns} campaigns removed",
            extra={"user_id": user_id},
        )
        return {"connections": connections, "campaigns_removed": campaigns}

    async def refresh(self, user_id: str) -> SyncReport:
        """Clear the identity's campaigns, then re-sync just that identity.

        Runs under the scheduler's sync lock; raises SyncInProgressError while
        another pass is in flight.
        """

        async def clear_and_sync() -> SyncReport:
            self.store.clear_campaigns(user_id)
            orchestrator = self.orchestrator_factory(self.session)
            return await orchestrator.run_cycle(trigger="refresh", user_ids=[user_id])

        return await self.scheduler.run_exclusive("refresh", clear_and_sync)
