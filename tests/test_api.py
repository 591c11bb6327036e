"""
Tests for the FastAPI routes.
"""

import asyncio
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import FakeAdsClient, FakeProvider, add_identity, campaign_row
from app.ai.registry import ProviderName, ProviderRegistry, get_registry
from app.api.campaign_routes import get_campaign_service
from app.api.sync_routes import get_scheduler
from app.core.timeutils import utcnow
from app.database import get_session
from app.main import app
from app.models.campaign_models import Campaign
from app.models.sync_models import SyncReport
from app.scheduler.jobs import SyncScheduler
from app.services.campaign_service import CampaignService
from app.sync.orchestrator import SyncOrchestrator

ACTIONABLE = "Increase the daily budget by 20%. Confidence: 80%"


@pytest.fixture
def providers():
    return {
        ProviderName.OPENAI: FakeProvider("openai", text=ACTIONABLE),
        ProviderName.ANTHROPIC: FakeProvider("anthropic", text=ACTIONABLE),
    }


@pytest.fixture
def client_factory(session, providers):
    """Build an AsyncClient with the app's dependencies pointed at test doubles."""
    created = []

    def build(registry_providers=None, scheduler=None, ads_clients=None):
        registry = ProviderRegistry(registry_providers if registry_providers is not None else providers)

        def override_session():
            yield session

        app.dependency_overrides[get_session] = override_session
        app.dependency_overrides[get_registry] = lambda: registry
        if scheduler is not None:
            app.dependency_overrides[get_scheduler] = lambda: scheduler
        if ads_clients is not None:
            app.dependency_overrides[get_campaign_service] = lambda: CampaignService(
                session,
                orchestrator_factory=lambda s: SyncOrchestrator(
                    s, client_factory=lambda credential: ads_clients[credential.user_id]
                ),
            )
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        created.append(client)
        return client

    yield build
    app.dependency_overrides.clear()


def make_campaign(session, user_id="admin-1") -> Campaign:
    campaign = Campaign(
        external_campaign_id="11",
        external_account_id="1000000000",
        owner_user_id=user_id,
        name="Brand Search",
    )
    session.add(campaign)
    session.commit()
    session.refresh(campaign)
    return campaign


@pytest.mark.anyio
async def test_health(client_factory):
    async with client_factory() as client:
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.anyio
async def test_providers_listing(client_factory):
    async with client_factory() as client:
        response = await client.get("/ai/providers")
    data = response.json()
    assert data["available"] == ["openai", "anthropic"]
    assert data["is_ready"] is True
    assert data["consensus_ready"] is True


@pytest.mark.anyio
async def test_consensus_endpoint(client_factory, session):
    campaign = make_campaign(session)
    async with client_factory() as client:
        response = await client.post(
            "/recommendations/consensus",
            json={"user_id": "admin-1", "prompt": "How do I scale?", "campaign_id": campaign.id},
        )
    assert response.status_code == 200
    data = response.json()
    assert data["agreement_level"] == 100
    assert data["models"] == ["openai", "anthropic"]
    assert data["recommendation_id"] is not None


@pytest.mark.anyio
async def test_consensus_insufficient_is_422(client_factory):
    single = {ProviderName.OPENAI: FakeProvider("openai")}
    async with client_factory(registry_providers=single) as client:
        response = await client.post(
            "/recommendations/consensus", json={"user_id": "admin-1", "prompt": "How?"}
        )
    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "insufficient_data"


@pytest.mark.anyio
async def test_single_endpoint_errors(client_factory):
    async with client_factory() as client:
        unknown = await client.post(
            "/recommendations/single",
            json={"user_id": "admin-1", "prompt": "How?", "provider": "gemini"},
        )
        unconfigured = await client.post(
            "/recommendations/single",
            json={"user_id": "admin-1", "prompt": "How?", "provider": "sarvam"},
        )
        ok = await client.post(
            "/recommendations/single",
            json={"user_id": "admin-1", "prompt": "How?", "provider": "openai"},
        )
    assert unknown.status_code == 400
    assert unconfigured.status_code == 503
    assert ok.status_code == 200
    assert ok.json()["confidence"] == 80
    assert ok.json()["model"] == "openai-model"


@pytest.mark.anyio
async def test_apply_then_apply_again_conflicts(client_factory, session):
    campaign = make_campaign(session)
    async with client_factory() as client:
        created = await client.post(
            "/recommendations/single",
            json={
                "user_id": "admin-1",
                "prompt": "How?",
                "provider": "openai",
                "campaign_id": campaign.id,
            },
        )
        rec_id = created.json()["recommendation_id"]
        first = await client.post(f"/recommendations/{rec_id}/apply", json={"user_id": "admin-1"})
        second = await client.post(f"/recommendations/{rec_id}/apply", json={"user_id": "admin-1"})
        stats = await client.get("/recommendations/stats", params={"user_id": "admin-1"})
        listing = await client.get("/recommendations", params={"user_id": "admin-1"})

    assert first.status_code == 200
    assert first.json()["status"] == "applied"
    assert first.json()["is_applied"] is True
    assert first.json()["id"] == rec_id
    assert first.json()["resolved_at"] is not None
    assert second.status_code == 409
    assert stats.json()["total"] == 1
    assert len(listing.json()) == 1


@pytest.mark.anyio
async def test_update_goals(client_factory, session):
    campaign = make_campaign(session)
    async with client_factory() as client:
        ok = await client.patch(
            f"/campaigns/{campaign.id}/goals",
            params={"user_id": "admin-1"},
            json={"target_cpa": "120.50", "goal_description": "Leads under 120"},
        )
        negative = await client.patch(
            f"/campaigns/{campaign.id}/goals",
            params={"user_id": "admin-1"},
            json={"target_roas": -1},
        )
        missing = await client.patch(
            "/campaigns/9999/goals", params={"user_id": "admin-1"}, json={"target_cpa": 1}
        )
    assert ok.status_code == 200
    assert ok.json()["id"] == campaign.id
    assert ok.json()["name"] == "Brand Search"
    assert ok.json()["goal_description"] == "Leads under 120"
    assert Decimal(str(ok.json()["target_cpa"])) == Decimal("120.50")
    session.refresh(campaign)
    assert campaign.target_cpa == Decimal("120.50")
    assert campaign.goal_description == "Leads under 120"
    assert negative.status_code == 422
    assert missing.status_code == 404


@pytest.mark.anyio
async def test_sync_trigger_and_status(client_factory):
    async def runner(trigger):
        return SyncReport(trigger=trigger, started_at=utcnow(), finished_at=utcnow())

    scheduler = SyncScheduler(runner=runner)
    async with client_factory(scheduler=scheduler) as client:
        triggered = await client.post("/sync/trigger")
        status = await client.get("/sync/status")

    assert triggered.json()["success"] is True
    assert status.json()["status"] == "scheduled"
    assert status.json()["last_sync"] is not None


@pytest.mark.anyio
async def test_selection_refresh_and_disconnect(client_factory, session):
    add_identity(session, "admin-1")
    ads = {"admin-1": FakeAdsClient(campaigns={"1000000000": [campaign_row("11"), campaign_row("12")]})}
    async with client_factory(ads_clients=ads) as client:
        selection = await client.put(
            "/accounts/selection", json={"user_id": "admin-1", "account_ids": ["1000000000"]}
        )
        refreshed = await client.post("/accounts/refresh", json={"user_id": "admin-1"})
        campaigns = await client.get("/campaigns", params={"user_id": "admin-1"})
        accounts = await client.get("/accounts", params={"user_id": "admin-1"})
        disconnected = await client.post("/accounts/disconnect", json={"user_id": "admin-1"})
        after = await client.get("/campaigns", params={"user_id": "admin-1"})

    assert selection.json()["selected_account_ids"] == ["1000000000"]
    assert refreshed.json()["synced_campaigns"] == 2
    assert len(campaigns.json()) == 2
    assert len(accounts.json()) == 1
    assert disconnected.json()["campaigns_removed"] == 2
    assert after.json() == []


@pytest.mark.anyio
async def test_dismiss_returns_resolved_recommendation(client_factory, session):
    campaign = make_campaign(session)
    async with client_factory() as client:
        created = await client.post(
            "/recommendations/single",
            json={
                "user_id": "admin-1",
                "prompt": "How?",
                "provider": "openai",
                "campaign_id": campaign.id,
            },
        )
        rec_id = created.json()["recommendation_id"]
        dismissed = await client.post(
            f"/recommendations/{rec_id}/dismiss", json={"user_id": "admin-1"}
        )

    assert dismissed.status_code == 200
    body = dismissed.json()
    assert body["id"] == rec_id
    assert body["status"] == "dismissed"
    assert body["is_applied"] is False
    assert body["content"] == ACTIONABLE


@pytest.mark.anyio
async def test_refresh_conflicts_with_running_sync(client_factory, session):
    add_identity(session, "admin-1", selected=["1000000000"])
    gate = asyncio.Event()

    async def gated_runner(trigger):
        await gate.wait()
        return SyncReport(trigger=trigger, started_at=utcnow(), finished_at=utcnow())

    scheduler = SyncScheduler(runner=gated_runner)
    ads = FakeAdsClient(campaigns={"1000000000": [campaign_row("11")]})
    app.dependency_overrides[get_campaign_service] = lambda: CampaignService(
        session,
        orchestrator_factory=lambda s: SyncOrchestrator(s, client_factory=lambda credential: ads),
        scheduler=scheduler,
    )

    in_flight = asyncio.create_task(scheduler.trigger_manual_sync())
    await asyncio.sleep(0)
    async with client_factory() as client:
        response = await client.post("/accounts/refresh", json={"user_id": "admin-1"})
    gate.set()
    await in_flight

    assert response.status_code == 409
    assert response.json()["detail"] == "Sync already running"
    assert ads.queried == []
