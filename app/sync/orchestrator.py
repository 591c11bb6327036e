"""ADPILOT — Sync Orchestrator.

One pass over every identity with an active ads connection:

  select → resolve → fetch → normalize & upsert → report

Failures are isolated at two boundaries. An identity that cannot be resolved
is recorded and skipped; an account whose fetch fails is recorded while its
siblings continue. The pass itself only raises on programming errors.
"""

import inspect
import time
from datetime import date, timedelta
from typing import Any, Callable, List, Optional

from sqlmodel import Session

from app.config import settings
from app.connectors.google_ads.accounts import AccountResolver
from app.connectors.google_ads.client import GoogleAdsClient
from app.connectors.google_ads.queries import normalize_customer_id
from app.connectors.google_ads.transformer import transform_campaign_rows
from app.core import audit
from app.core.audit import AuditSink
from app.core.errors import PerAccountFetchError, PerIdentitySyncError
from app.core.logging import get_logger
from app.core.timeutils import utcnow
from app.models.account_models import AdsCredential, ResolvedAccount
from app.models.campaign_models import DateWindow
from app.models.sync_models import IdentityOutcome, IdentitySyncResult, SyncReport
from app.sync.store import CampaignStore, CredentialStore

logger = get_logger("sync.orchestrator")

ClientFactory = Callable[[AdsCredential], Any]


def reporting_window(today: Optional[date] = None, days: Optional[int] = None) -> DateWindow:
    """Trailing window of `days` full days, ending yesterday."""
    today = today or utcnow().date()
    days = days or settings.sync_window_days
    end = today - timedelta(days=1)
    return DateWindow(start=end - timedelta(days=days - 1), end=end)


async def _close_client(client: Any) -> None:
    close = getattr(client, "close", None)
    if close is None:
        return
    result = close()
    if inspect.isawaitable(result):
        await result


class SyncOrchestrator:
    """Reconciles remote accounts and campaigns into the local store."""

    def __init__(
        self,
        session: Session,
        client_factory: Optional[ClientFactory] = None,
        resolver: Optional[AccountResolver] = None,
        today: Optional[date] = None,
    ):
        self.session = session
        self.campaigns = CampaignStore(session)
        self.credentials = CredentialStore(session)
        self.audit = AuditSink(session)
        self.client_factory = client_factory or GoogleAdsClient.from_credential
        self.resolver = resolver or AccountResolver()
        self.today = today

    async def run_cycle(
        self, trigger: str = "scheduled", user_ids: Optional[List[str]] = None
    ) -> SyncReport:
        """Run one pass. `user_ids` narrows the pass (used by refresh)."""
        report = SyncReport(trigger=trigger, started_at=utcnow())
        identities = (
            user_ids if user_ids is not None else self.campaigns.list_connected_identities()
        )
        window = reporting_window(self.today)
        logger.info(
            f"🔄 Sync pass starting for {len(identities)} identities "
            f"({window.start} → {window.end})",
            extra={"trigger": trigger},
        )

        for user_id in identities:
            report.identities.append(await self.sync_identity(user_id, window))

        report.finished_at = utcnow()
        self.audit.record(
            "system",
            audit.SYNC_COMPLETED,
            {
                "syncedUsers": report.synced_users,
                "syncedAccounts": report.synced_accounts,
                "syncedCampaigns": report.synced_campaigns,
                "failedUsers": report.failed_users,
                "failedAccounts": report.failed_accounts,
                "trigger": trigger,
            },
            timestamp=report.finished_at,
        )
        logger.info(
            f"✅ Sync pass complete: {report.synced_users} users, "
            f"{report.synced_accounts} accounts, {report.synced_campaigns} campaigns "
            f"({report.failed_users} users / {report.failed_accounts} accounts failed)",
            extra={"trigger": trigger},
        )
        return report

    async def sync_identity(
        self, user_id: str, window: Optional[DateWindow] = None
    ) -> IdentitySyncResult:
        window = window or reporting_window(self.today)
        result = IdentitySyncResult(user_id=user_id, outcome=IdentityOutcome.SYNCED)

        selected = self.campaigns.get_selected_accounts(user_id)
        if not selected:
            logger.info("No accounts selected, skipping", extra={"user_id": user_id})
            result.outcome = IdentityOutcome.SKIPPED
            return result

        client = None
        try:
            try:
                credential = self.credentials.get_credential(user_id)
                client = self.client_factory(credential)
                hierarchy = await self.resolver.resolve(credential, client)
            except Exception as e:
                return self._identity_failed(result, PerIdentitySyncError(user_id, e))

            self.campaigns.save_accounts(user_id, hierarchy.leaf_accounts)
            leaves = {a.account_id: a for a in hierarchy.leaf_accounts}

            for raw_id in selected:
                account = leaves.get(normalize_customer_id(raw_id))
                if account is None:
                    logger.warning(
                        f"Selected account {raw_id} is not a resolved leaf, skipping",
                        extra={"user_id": user_id, "account_id": raw_id},
                    )
                    continue
                await self._sync_account(result, client, account, window)
        finally:
            if client is not None:
                await _close_client(client)

        return result

    async def _sync_account(
        self,
        result: IdentitySyncResult,
        client: Any,
        account: ResolvedAccount,
        window: DateWindow,
    ) -> None:
        start = time.monotonic()
        try:
            rows = await client.query_campaigns(account.account_id, window)
            records = transform_campaign_rows(rows, account)
            created, updated = self.campaigns.upsert_campaigns(result.user_id, records)
        except Exception as e:
            error = PerAccountFetchError(account.account_id, e)
            logger.error(
                str(error),
                extra={"user_id": result.user_id, "account_id": account.account_id},
            )
            result.accounts_failed += 1
            result.errors.append(str(error))
            self.audit.record(
                result.user_id,
                audit.SYNC_ERROR_ACCOUNT,
                {"accountId": account.account_id, "error": str(e)},
            )
            return

        result.accounts_synced += 1
        result.campaigns_created += created
        result.campaigns_updated += updated
        logger.info(
            f"Synced {created + updated} campaigns ({created} new)",
            extra={
                "user_id": result.user_id,
                "account_id": account.account_id,
                "duration_ms": int((time.monotonic() - start) * 1000),
            },
        )

    def _identity_failed(
        self, result: IdentitySyncResult, error: PerIdentitySyncError
    ) -> IdentitySyncResult:
        logger.error(str(error), extra={"user_id": result.user_id})
        result.outcome = IdentityOutcome.FAILED
        result.errors.append(str(error))
        self.audit.record(
            result.user_id,
            audit.SYNC_ERROR_IDENTITY,
            {"error": str(error.cause), "errorType": type(error.cause).__name__},
        )
        return result
