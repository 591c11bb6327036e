"""
Shared fixtures: in-memory database, a fake ads platform client and fake AI providers.
"""

import asyncio
from typing import Dict, List, Optional, Union

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.ai.base_provider import AIProvider
from app.models import account_models, audit_models, campaign_models, recommendation_models  # noqa: F401
from app.models.account_models import AccountSelection, AdminIdentity, AdsConnection


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


def add_identity(
    session: Session,
    user_id: str,
    root_account_id: str = "1000000000",
    root_account_name: str = "Root Account",
    selected: Optional[List[str]] = None,
    active: bool = True,
) -> AdminIdentity:
    identity = AdminIdentity(id=user_id, username=user_id)
    session.add(identity)
    session.add(
        AdsConnection(
            admin_user_id=user_id,
            root_account_id=root_account_id,
            root_account_name=root_account_name,
            refresh_token=f"refresh-{user_id}",
            is_active=active,
        )
    )
    if selected is not None:
        session.add(AccountSelection(user_id=user_id, selected_account_ids=selected))
    session.commit()
    return identity


def child_row(account_id: str, name: str) -> Dict:
    return {"customerClient": {"id": account_id, "descriptiveName": name}}


def campaign_row(
    campaign_id: str,
    name: str = "Brand Search",
    channel: Union[str, int] = "SEARCH",
    impressions: str = "1000",
    clicks: str = "50",
    conversions: float = 5.0,
    conversions_value: float = 2500.0,
    cost_micros: str = "1000000000",
    budget_micros: str = "200000000",
    target_cpa_micros: Optional[str] = None,
    target_roas: Optional[float] = None,
) -> Dict:
    campaign = {
        "id": campaign_id,
        "name": name,
        "status": "ENABLED",
        "advertisingChannelType": channel,
    }
    if target_cpa_micros is not None:
        campaign["targetCpa"] = {"targetCpaMicros": target_cpa_micros}
    if target_roas is not None:
        campaign["targetRoas"] = {"targetRoas": target_roas}
    return {
        "campaign": campaign,
        "campaignBudget": {"amountMicros": budget_micros},
        "metrics": {
            "impressions": impressions,
            "clicks": clicks,
            "conversions": conversions,
            "conversionsValue": conversions_value,
            "costMicros": cost_micros,
        },
    }


class FakeAdsClient:
    """Stands in for GoogleAdsClient. Values may be exceptions to raise."""

    def __init__(self, children=None, campaigns: Optional[Dict] = None):
        self.children = children if children is not None else []
        self.campaigns = campaigns or {}
        self.queried: List[str] = []
        self.closed = False

    async def list_child_accounts(self, root_id: str):
        if isinstance(self.children, Exception):
            raise self.children
        return self.children

    async def query_campaigns(self, account_id: str, window):
        self.queried.append(account_id)
        rows = self.campaigns.get(account_id, [])
        if isinstance(rows, Exception):
            raise rows
        return rows

    async def close(self):
        self.closed = True


class FakeProvider(AIProvider):
    """Deterministic provider. `delay` simulates a slow vendor, `error` a failing one."""

    def __init__(
        self,
        name: str,
        text: str = "Increase the daily budget. Confidence: 80%",
        delay: float = 0.0,
        error: Optional[Exception] = None,
        available: bool = True,
        timeout: float = 5.0,
    ):
        super().__init__(model=f"{name}-model", timeout=timeout)
        self.name = name
        self.display_name = name.title()
        self.text = text
        self.delay = delay
        self.error = error
        self.available = available
        self.calls: List[str] = []

    def is_available(self) -> bool:
        return self.available

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append(user_prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text
