"""ADPILOT — Local Stores for the Sync Pipeline.

CredentialStore reads root credentials; CampaignStore owns account selection,
external-account bookkeeping and the idempotent campaign upsert.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import delete
from sqlmodel import Session, select

from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.core.metric_normalizer import actual_cpa, actual_roas
from app.core.timeutils import utcnow
from app.models.account_models import (
    AccountSelection,
    AdminIdentity,
    AdsConnection,
    AdsCredential,
    ExternalAccount,
    ResolvedAccount,
)
from app.models.campaign_models import Campaign, NormalizedCampaign
from app.models.recommendation_models import Recommendation

logger = get_logger("sync.store")

# Fields a sync is allowed to overwrite. Owner goals and burn-in are not here.
_SYNCED_FIELDS = (
    "external_account_id",
    "name",
    "channel_type",
    "status",
    "daily_budget",
    "impressions",
    "clicks",
    "conversions",
    "conversion_value",
    "cost",
    "ctr",
    "avg_cpc",
    "conversion_rate",
)


class CredentialStore:
    def __init__(self, session: Session):
        self.session = session

    def _active_connection(self, user_id: str) -> Optional[AdsConnection]:
        return self.session.exec(
            select(AdsConnection)
            .where(AdsConnection.admin_user_id == user_id)
            .where(AdsConnection.is_active == True)  # noqa: E712
            .order_by(AdsConnection.connected_at.desc())  # type: ignore
        ).first()

    def get_credential(self, user_id: str) -> AdsCredential:
        connection = self._active_connection(user_id)
        if connection is None:
            raise NotFoundError(f"No active ads connection for {user_id}")
        return AdsCredential(
            user_id=user_id,
            root_account_id=connection.root_account_id,
            root_account_name=connection.root_account_name,
            refresh_token=connection.refresh_token,
        )

    def deactivate(self, user_id: str) -> int:
        """Mark every connection of the identity inactive. Returns the count."""
        connections = self.session.exec(
            select(AdsConnection).where(AdsConnection.admin_user_id == user_id)
        ).all()
        for connection in connections:
            connection.is_active = False
            self.session.add(connection)
        self.session.commit()
        return len(connections)


class CampaignStore:
    def __init__(self, session: Session):
        self.session = session

    # ── Identities & selection ──

    def list_connected_identities(self) -> List[str]:
        """Active admin identities holding an active connection, in stable order."""
        rows = self.session.exec(
            select(AdminIdentity.id)
            .join(AdsConnection, AdsConnection.admin_user_id == AdminIdentity.id)
            .where(AdminIdentity.is_active == True)  # noqa: E712
            .where(AdsConnection.is_active == True)  # noqa: E712
            .distinct()
            .order_by(AdminIdentity.id)
        ).all()
        return list(rows)

    def get_selected_accounts(self, user_id: str) -> List[str]:
        selection = self.session.exec(
            select(AccountSelection).where(AccountSelection.user_id == user_id)
        ).first()
        if selection is None:
            return []
        return list(selection.selected_account_ids or [])

    def set_selected_accounts(self, user_id: str, account_ids: Sequence[str]) -> List[str]:
        # Deduplicate, keep caller order
        unique_ids = list(dict.fromkeys(str(a) for a in account_ids if str(a).strip()))
        selection = self.session.exec(
            select(AccountSelection).where(AccountSelection.user_id == user_id)
        ).first()
        if selection is None:
            selection = AccountSelection(user_id=user_id, selected_account_ids=unique_ids)
        else:
            selection.selected_account_ids = unique_ids
            selection.updated_at = utcnow()
        self.session.add(selection)
        self.session.commit()
        return unique_ids

    # ── External accounts ──

    def save_accounts(
        self, user_id: str, accounts: Iterable[ResolvedAccount], seen_at: Optional[datetime] = None
    ) -> int:
        """Create or refresh external_accounts rows for resolved leaves."""
        seen_at = seen_at or utcnow()
        count = 0
        for account in accounts:
            existing = self.session.exec(
                select(ExternalAccount).where(
                    ExternalAccount.owner_user_id == user_id,
                    ExternalAccount.account_id == account.account_id,
                )
            ).first()
            if existing:
                existing.display_name = account.display_name
                existing.is_manager = account.is_manager
                existing.parent_account_id = account.parent_account_id
                existing.is_primary = account.is_primary
                existing.last_seen_at = seen_at
                self.session.add(existing)
            else:
                self.session.add(
                    ExternalAccount(
                        owner_user_id=user_id,
                        account_id=account.account_id,
                        display_name=account.display_name,
                        is_manager=account.is_manager,
                        parent_account_id=account.parent_account_id,
                        is_primary=account.is_primary,
                        last_seen_at=seen_at,
                    )
                )
            count += 1
        self.session.commit()
        return count

    def list_accounts(self, user_id: str) -> List[ExternalAccount]:
        return list(
            self.session.exec(
                select(ExternalAccount)
                .where(ExternalAccount.owner_user_id == user_id)
                .order_by(ExternalAccount.account_id)
            ).all()
        )

    def delete_accounts(self, user_id: str) -> None:
        self.session.execute(
            delete(ExternalAccount).where(ExternalAccount.owner_user_id == user_id)
        )
        self.session.commit()

    # ── Campaigns ──

    def upsert_campaigns(
        self,
        user_id: str,
        records: List[NormalizedCampaign],
        synced_at: Optional[datetime] = None,
    ) -> Tuple[int, int]:
        """Insert or update one account's campaigns in a single transaction.

        Keyed on (external_campaign_id, owner_user_id). Returns (created, updated).
        On insert, owner targets are seeded from the platform's bidding targets;
        later syncs never touch them.
        """
        synced_at = synced_at or utcnow()
        created = updated = 0
        try:
            for record in records:
                existing = self.session.exec(
                    select(Campaign).where(
                        Campaign.external_campaign_id == record.external_campaign_id,
                        Campaign.owner_user_id == user_id,
                    )
                ).first()

                if existing:
                    campaign = existing
                    updated += 1
                else:
                    campaign = Campaign(
                        external_campaign_id=record.external_campaign_id,
                        external_account_id=record.external_account_id,
                        owner_user_id=user_id,
                        name=record.name,
                        target_cpa=record.platform_target_cpa,
                        target_roas=record.platform_target_roas,
                    )
                    created += 1

                for field in _SYNCED_FIELDS:
                    setattr(campaign, field, getattr(record, field))
                campaign.actual_cpa = actual_cpa(record.cost, record.conversions)
                campaign.actual_roas = actual_roas(record.conversion_value, record.cost)
                campaign.last_sync_at = synced_at
                self.session.add(campaign)

            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return created, updated

    def list_campaigns(
        self, user_id: str, account_ids: Optional[Sequence[str]] = None
    ) -> List[Campaign]:
        query = select(Campaign).where(Campaign.owner_user_id == user_id)
        if account_ids:
            query = query.where(Campaign.external_account_id.in_(list(account_ids)))  # type: ignore
        return list(self.session.exec(query.order_by(Campaign.id)).all())

    def get_campaign(self, campaign_id: int, user_id: str) -> Optional[Campaign]:
        return self.session.exec(
            select(Campaign).where(
                Campaign.id == campaign_id, Campaign.owner_user_id == user_id
            )
        ).first()

    def clear_campaigns(self, user_id: str) -> int:
        """Delete the identity's campaigns and the recommendations that point at them."""
        campaign_ids = list(
            self.session.exec(
                select(Campaign.id).where(Campaign.owner_user_id == user_id)
            ).all()
        )
        if campaign_ids:
            self.session.execute(
                delete(Recommendation).where(Recommendation.campaign_id.in_(campaign_ids))  # type: ignore
            )
            self.session.execute(
                delete(Campaign).where(Campaign.owner_user_id == user_id)
            )
        self.session.commit()
        logger.info(f"Cleared {len(campaign_ids)} campaigns", extra={"user_id": user_id})
        return len(campaign_ids)
