"""ADPILOT — AI Provider Routes."""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.ai.registry import ProviderRegistry, get_registry
from app.config import settings

router = APIRouter(prefix="/ai", tags=["AI"])


class ProvidersResponse(BaseModel):
    """Response for GET /ai/providers."""

    available: List[str]
    is_ready: bool
    consensus_ready: bool
    consensus_provider: str


@router.get("/providers", response_model=ProvidersResponse)
async def list_providers(registry: ProviderRegistry = Depends(get_registry)):
    """Which providers have credentials configured."""
    return ProvidersResponse(
        available=registry.available_names(),
        is_ready=registry.is_ready,
        consensus_ready=registry.consensus_ready,
        consensus_provider=settings.consensus_provider,
    )
