"""ADPILOT — Campaign & Account Routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session

from app.core.errors import NotFoundError, SyncInProgressError
from app.core.logging import get_logger
from app.database import get_session
from app.models.account_models import ExternalAccount
from app.models.campaign_models import Campaign, CampaignGoalsUpdate
from app.services.campaign_service import CampaignService
from app.sync.store import CampaignStore

logger = get_logger("api.campaigns")

router = APIRouter(tags=["Campaigns"])


class SelectionRequest(BaseModel):
    user_id: str
    account_ids: List[str]


class OwnerRequest(BaseModel):
    user_id: str


class RefreshResponse(BaseModel):
    success: bool
    synced_accounts: int
    synced_campaigns: int
    errors: List[str] = []


def get_campaign_service(session: Session = Depends(get_session)) -> CampaignService:
    return CampaignService(session)


@router.get("/campaigns", response_model=List[Campaign])
async def list_campaigns(
    user_id: str,
    account_ids: Optional[List[str]] = Query(default=None),
    service: CampaignService = Depends(get_campaign_service),
):
    return service.list_campaigns(user_id, account_ids)


@router.patch("/campaigns/{campaign_id}/goals", response_model=Campaign)
async def update_goals(
    campaign_id: int,
    goals: CampaignGoalsUpdate,
    user_id: str,
    service: CampaignService = Depends(get_campaign_service),
):
    """Set target CPA / ROAS and the goal description. Negative targets are rejected."""
    try:
        return service.update_goals(campaign_id, user_id, goals)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/accounts", response_model=List[ExternalAccount])
async def list_accounts(user_id: str, session: Session = Depends(get_session)):
    """External accounts discovered for the identity."""
    return CampaignStore(session).list_accounts(user_id)


@router.put("/accounts/selection")
async def set_selection(
    request: SelectionRequest,
    service: CampaignService = Depends(get_campaign_service),
):
    selected = service.set_selection(request.user_id, request.account_ids)
    return {"status": "success", "selected_account_ids": selected}


@router.post("/accounts/disconnect")
async def disconnect(
    request: OwnerRequest,
    service: CampaignService = Depends(get_campaign_service),
):
    """Deactivate the ads connection and remove synced data."""
    result = service.disconnect(request.user_id)
    return {"status": "success", **result}


@router.post("/accounts/refresh", response_model=RefreshResponse)
async def refresh(
    request: OwnerRequest,
    service: CampaignService = Depends(get_campaign_service),
):
    """Clear local campaigns and re-sync this identity now. 409 while a sync pass is running."""
    try:
        report = await service.refresh(request.user_id)
    except SyncInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    errors = [e for identity in report.identities for e in identity.errors]
    return RefreshResponse(
        success=report.failed_users == 0,
        synced_accounts=report.synced_accounts,
        synced_campaigns=report.synced_campaigns,
        errors=errors,
    )
