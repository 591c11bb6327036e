"""ADPILOT — Account Resolver.

Given one root credential, discovers the leaf (client) accounts it controls.
A root with no enabled children is a standalone account. Hierarchy discovery
must never stall a sync: any platform error while listing children degrades
to the standalone result.
"""

from typing import Any, Dict, List

from app.connectors.google_ads.queries import normalize_customer_id
from app.core.errors import AccountHierarchyError, AdsAuthError, AdsPlatformError
from app.core.logging import get_logger
from app.models.account_models import AccountHierarchy, AdsCredential, ResolvedAccount

logger = get_logger("google_ads.accounts")


def _standalone(credential: AdsCredential, degraded: bool = False) -> AccountHierarchy:
    root_id = normalize_customer_id(credential.root_account_id)
    return AccountHierarchy(
        is_manager=False,
        leaf_accounts=[
            ResolvedAccount(
                account_id=root_id,
                display_name=credential.root_account_name or f"Account {root_id}",
                is_manager=False,
                parent_account_id=None,
                is_primary=True,
            )
        ],
        degraded=degraded,
    )


def _child_from_row(row: Dict[str, Any], root_id: str) -> ResolvedAccount:
    child = row.get("customerClient", {})
    account_id = normalize_customer_id(child.get("id", ""))
    return ResolvedAccount(
        account_id=account_id,
        display_name=child.get("descriptiveName") or f"Account {account_id}",
        is_manager=False,
        parent_account_id=root_id,
        is_primary=False,
    )


class AccountResolver:
    """Resolves a root credential into its leaf accounts."""

    async def resolve(self, credential: AdsCredential, client) -> AccountHierarchy:
        """Return {is_manager, leaf_accounts} for the credential's root account.

        `client` is anything exposing `list_child_accounts(root_id)`.
        Authentication failures propagate; every other platform error falls
        back to the standalone result.
        """
        root_id = normalize_customer_id(credential.root_account_id)
        try:
            rows = await client.list_child_accounts(root_id)
        except AdsAuthError:
            raise
        except AdsPlatformError as e:
            error = AccountHierarchyError(str(e), e.status_code, e.error_code)
            logger.warning(
                f"Child account listing failed for {root_id}, treating as standalone: {error}",
                extra={"user_id": credential.user_id, "account_id": root_id},
            )
            return _standalone(credential, degraded=True)

        children: List[ResolvedAccount] = []
        for row in rows:
            child = _child_from_row(row, root_id)
            # The root can echo itself back in customer_client results
            if child.account_id and child.account_id != root_id:
                children.append(child)

        if not children:
            logger.info(
                f"Account {root_id} is standalone",
                extra={"user_id": credential.user_id, "account_id": root_id},
            )
            return _standalone(credential)

        logger.info(
            f"Manager account {root_id} controls {len(children)} client accounts",
            extra={"user_id": credential.user_id, "account_id": root_id},
        )
        return AccountHierarchy(is_manager=True, leaf_accounts=children)
