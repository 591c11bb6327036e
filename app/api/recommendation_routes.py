"""ADPILOT — Recommendation Routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from app.ai.registry import AUTO, ProviderRegistry, get_registry
from app.core.errors import (
    InsufficientProvidersError,
    NotFoundError,
    ProviderUnavailableError,
    RecommendationStateError,
    TransientProviderError,
    UnknownProviderError,
)
from app.core.logging import get_logger
from app.database import get_session
from app.models.recommendation_models import (
    GenerationSummary,
    Recommendation,
    RecommendationStats,
    RecommendationStatus,
)
from app.services.recommendation_service import RecommendationService

logger = get_logger("api.recommendations")

router = APIRouter(prefix="/recommendations", tags=["Recommendations"])


# ── Request / Response Models ──


class ConsensusRequest(BaseModel):
    user_id: str
    prompt: str
    campaign_id: Optional[int] = None


class ConsensusResponse(BaseModel):
    final_recommendation: str
    confidence: int
    agreement_level: int
    models: List[str]
    synthesized_by: Optional[str] = None
    reasoning: str = ""
    recommendation_id: Optional[int] = None


class SingleRequest(BaseModel):
    user_id: str
    prompt: str
    provider: str = AUTO
    campaign_id: Optional[int] = None


class SingleResponse(BaseModel):
    content: str
    confidence: int
    model: str
    provider: str
    recommendation_id: Optional[int] = None


class OwnerRequest(BaseModel):
    user_id: str


def get_recommendation_service(
    session: Session = Depends(get_session),
    registry: ProviderRegistry = Depends(get_registry),
) -> RecommendationService:
    return RecommendationService(session, registry)


# ── Generation ──


@router.post("/consensus", response_model=ConsensusResponse)
async def consensus_recommendation(
    request: ConsensusRequest,
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Ask every configured provider and reconcile their answers."""
    try:
        result, recommendation = await service.create_from_consensus(
            request.user_id, request.prompt, request.campaign_id
        )
    except InsufficientProvidersError as e:
        raise HTTPException(
            status_code=422,
            detail={"error": "insufficient_data", "message": str(e)},
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return ConsensusResponse(
        final_recommendation=result.final_recommendation,
        confidence=result.confidence,
        agreement_level=result.agreement_level,
        models=result.models,
        synthesized_by=result.synthesized_by,
        reasoning=result.reasoning,
        recommendation_id=recommendation.id if recommendation else None,
    )


@router.post("/single", response_model=SingleResponse)
async def single_recommendation(
    request: SingleRequest,
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Ask one named provider ('auto' picks the default)."""
    try:
        response, adapter, recommendation = await service.create_from_provider(
            request.user_id, request.prompt, request.provider, request.campaign_id
        )
    except UnknownProviderError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TransientProviderError as e:
        raise HTTPException(status_code=502, detail=f"AI generation failed: {e}")

    return SingleResponse(
        content=response.text,
        confidence=response.confidence,
        model=response.model_id,
        provider=adapter.display_name,
        recommendation_id=recommendation.id if recommendation else None,
    )


@router.post("/generate", response_model=GenerationSummary)
async def generate_for_campaigns(
    request: OwnerRequest,
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Prune expired recommendations, then evaluate every stored campaign."""
    try:
        return await service.generate_for_stored_campaigns(request.user_id)
    except ProviderUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))


# ── Lifecycle ──


@router.get("", response_model=List[Recommendation])
async def list_recommendations(
    user_id: str,
    status: Optional[RecommendationStatus] = None,
    campaign_id: Optional[int] = None,
    limit: int = 100,
    service: RecommendationService = Depends(get_recommendation_service),
):
    return service.list_for_user(user_id, status, campaign_id, limit)


@router.get("/stats", response_model=RecommendationStats)
async def recommendation_stats(
    user_id: str,
    service: RecommendationService = Depends(get_recommendation_service),
):
    return service.stats(user_id)


@router.post("/{recommendation_id}/apply", response_model=Recommendation)
async def apply_recommendation(
    recommendation_id: int,
    request: OwnerRequest,
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Mark applied and start the campaign's burn-in period."""
    try:
        return service.apply(recommendation_id, request.user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RecommendationStateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{recommendation_id}/dismiss", response_model=Recommendation)
async def dismiss_recommendation(
    recommendation_id: int,
    request: OwnerRequest,
    service: RecommendationService = Depends(get_recommendation_service),
):
    try:
        return service.dismiss(recommendation_id, request.user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RecommendationStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
