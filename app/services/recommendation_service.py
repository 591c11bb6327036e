"""ADPILOT — Recommendation Service.

Turns provider output into stored recommendations and owns their lifecycle:

  pending → applied | dismissed   (both terminal)

Applying a recommendation starts a burn-in period on its campaign; while a
campaign is burning in, new actionable advice is downgraded to monitor so the
last change gets time to show results.
"""

from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import delete
from sqlmodel import Session, select

from app.ai.base_provider import AIProvider
from app.ai.classifier import classify
from app.ai.consensus import ConsensusEngine
from app.ai.registry import AUTO, ProviderRegistry
from app.config import settings
from app.core import audit
from app.core.audit import AuditSink
from app.core.errors import (
    NotFoundError,
    RecommendationStateError,
    TransientProviderError,
)
from app.core.logging import get_logger
from app.core.timeutils import ensure_utc, utcnow
from app.models.campaign_models import Campaign
from app.models.recommendation_models import (
    CONSENSUS_PROVIDER_LABEL,
    ConsensusResult,
    GenerationSummary,
    ProviderResponse,
    Recommendation,
    RecommendationStats,
    RecommendationStatus,
    RecommendationType,
)
from app.sync.store import CampaignStore

logger = get_logger("recommendations")

DAILY_EVALUATION_PROMPT = (
    "Daily evaluation: review this campaign's last 7 days against its goals "
    "and give the single most important recommendation."
)


def in_burn_in(campaign: Optional[Campaign]) -> bool:
    if campaign is None or campaign.burn_in_until is None:
        return False
    return ensure_utc(campaign.burn_in_until) > utcnow()


class RecommendationService:
    def __init__(
        self,
        session: Session,
        registry: ProviderRegistry,
        engine: Optional[ConsensusEngine] = None,
    ):
        self.session = session
        self.registry = registry
        self.engine = engine or ConsensusEngine(registry)
        self.campaigns = CampaignStore(session)
        self.audit = AuditSink(session)

    # ── Creation ──

    def _campaign(self, campaign_id: Optional[int], user_id: str) -> Optional[Campaign]:
        if campaign_id is None:
            return None
        campaign = self.campaigns.get_campaign(campaign_id, user_id)
        if campaign is None:
            raise NotFoundError(f"Campaign {campaign_id} not found")
        return campaign

    def classify_for(self, campaign: Optional[Campaign], text: str) -> RecommendationType:
        rec_type = classify(text)
        if rec_type == RecommendationType.ACTIONABLE and in_burn_in(campaign):
            logger.info(
                f"Campaign {campaign.id} is in burn-in, downgrading to monitor",
                extra={"user_id": campaign.owner_user_id},
            )
            return RecommendationType.MONITOR
        return rec_type

    def _store(
        self,
        user_id: str,
        campaign: Optional[Campaign],
        content: str,
        confidence: int,
        provider_label: str,
    ) -> Optional[Recommendation]:
        """Persist a recommendation. Campaign-less advice is returned, not stored."""
        if campaign is None:
            return None
        recommendation = Recommendation(
            owner_user_id=user_id,
            campaign_id=campaign.id,
            type=self.classify_for(campaign, content),
            content=content,
            confidence=confidence,
            provider=provider_label,
        )
        self.session.add(recommendation)
        self.session.commit()
        self.session.refresh(recommendation)
        self.audit.record(
            user_id,
            audit.RECOMMENDATION_GENERATED,
            {
                "type": recommendation.type,
                "provider": provider_label,
                "confidence": confidence,
            },
            campaign_id=campaign.id,
            recommendation_id=recommendation.id,
        )
        # the audit commit expires loaded attributes
        self.session.refresh(recommendation)
        return recommendation

    async def create_from_consensus(
        self, user_id: str, prompt: str, campaign_id: Optional[int] = None
    ) -> Tuple[ConsensusResult, Optional[Recommendation]]:
        """Raises InsufficientProvidersError when fewer than two providers answer."""
        campaign = self._campaign(campaign_id, user_id)
        result = await self.engine.generate_with_consensus(prompt, campaign)
        recommendation = self._store(
            user_id,
            campaign,
            result.final_recommendation,
            result.confidence,
            CONSENSUS_PROVIDER_LABEL,
        )
        return result, recommendation

    async def create_from_provider(
        self,
        user_id: str,
        prompt: str,
        provider: str = AUTO,
        campaign_id: Optional[int] = None,
    ) -> Tuple[ProviderResponse, AIProvider, Optional[Recommendation]]:
        adapter = self.registry.select(provider)
        campaign = self._campaign(campaign_id, user_id)
        return await self._generate_single(user_id, adapter, prompt, campaign)

    async def _generate_single(
        self,
        user_id: str,
        adapter: AIProvider,
        prompt: str,
        campaign: Optional[Campaign],
    ) -> Tuple[ProviderResponse, AIProvider, Optional[Recommendation]]:
        response = await adapter.generate(prompt, campaign)
        if not response.is_usable:
            raise TransientProviderError(adapter.name, response.error or "no usable response")
        recommendation = self._store(
            user_id, campaign, response.text, response.confidence, adapter.display_name
        )
        return response, adapter, recommendation

    async def generate_for_stored_campaigns(self, user_id: str) -> GenerationSummary:
        """One recommendation per stored campaign via the default provider.

        Raises ProviderUnavailableError when no provider is configured at all;
        per-campaign failures are counted.
        """
        summary = GenerationSummary(pruned=self.prune_expired(user_id))
        adapter = self.registry.select(AUTO)

        for campaign in self.campaigns.list_campaigns(user_id):
            try:
                await self._generate_single(
                    user_id, adapter, DAILY_EVALUATION_PROMPT, campaign
                )
                summary.generated += 1
            except TransientProviderError as e:
                summary.errors += 1
                logger.warning(
                    f"No recommendation for campaign {campaign.id}: {e}",
                    extra={"user_id": user_id, "provider": adapter.name},
                )

        logger.info(
            f"Generated {summary.generated} recommendations "
            f"({summary.errors} errors, {summary.pruned} pruned)",
            extra={"user_id": user_id},
        )
        return summary

    # ── Retention ──

    def prune_expired(self, user_id: Optional[str] = None) -> int:
        """Delete recommendations older than the retention window."""
        cutoff = utcnow() - timedelta(days=settings.recommendation_retention_days)
        stmt = delete(Recommendation).where(Recommendation.created_at < cutoff)
        if user_id is not None:
            stmt = stmt.where(Recommendation.owner_user_id == user_id)
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount or 0

    # ── Lifecycle ──

    def get(self, recommendation_id: int, user_id: str) -> Recommendation:
        recommendation = self.session.exec(
            select(Recommendation).where(
                Recommendation.id == recommendation_id,
                Recommendation.owner_user_id == user_id,
            )
        ).first()
        if recommendation is None:
            raise NotFoundError(f"Recommendation {recommendation_id} not found")
        return recommendation

    def _resolve(
        self, recommendation_id: int, user_id: str, status: RecommendationStatus
    ) -> Recommendation:
        recommendation = self.get(recommendation_id, user_id)
        if recommendation.status != RecommendationStatus.PENDING:
            raise RecommendationStateError(
                recommendation_id, RecommendationStatus(recommendation.status).value
            )
        now = utcnow()
        recommendation.status = status
        recommendation.is_applied = status == RecommendationStatus.APPLIED
        recommendation.resolved_at = now
        self.session.add(recommendation)
        return recommendation

    def apply(self, recommendation_id: int, user_id: str) -> Recommendation:
        recommendation = self._resolve(
            recommendation_id, user_id, RecommendationStatus.APPLIED
        )
        campaign = self.session.get(Campaign, recommendation.campaign_id)
        if campaign is not None:
            campaign.burn_in_until = recommendation.resolved_at + timedelta(
                hours=settings.burn_in_hours
            )
            self.session.add(campaign)
        self.session.commit()
        self.session.refresh(recommendation)
        self.audit.record(
            user_id,
            audit.RECOMMENDATION_APPLIED,
            {"content": recommendation.content[:200], "burnInHours": settings.burn_in_hours},
            performed_by=user_id,
            campaign_id=recommendation.campaign_id,
            recommendation_id=recommendation.id,
        )
        self.session.refresh(recommendation)
        return recommendation

    def dismiss(self, recommendation_id: int, user_id: str) -> Recommendation:
        recommendation = self._resolve(
            recommendation_id, user_id, RecommendationStatus.DISMISSED
        )
        self.session.commit()
        self.session.refresh(recommendation)
        self.audit.record(
            user_id,
            audit.RECOMMENDATION_DISMISSED,
            {},
            performed_by=user_id,
            campaign_id=recommendation.campaign_id,
            recommendation_id=recommendation.id,
        )
        self.session.refresh(recommendation)
        return recommendation

    # ── Queries ──

    def list_for_user(
        self,
        user_id: str,
        status: Optional[RecommendationStatus] = None,
        campaign_id: Optional[int] = None,
        limit: int = 100,
    ) -> List[Recommendation]:
        query = select(Recommendation).where(Recommendation.owner_user_id == user_id)
        if status is not None:
            query = query.where(Recommendation.status == status)
        if campaign_id is not None:
            query = query.where(Recommendation.campaign_id == campaign_id)
        query = query.order_by(Recommendation.created_at.desc()).limit(limit)  # type: ignore
        return list(self.session.exec(query).all())

    def stats(self, user_id: str) -> RecommendationStats:
        recent_cutoff = utcnow() - timedelta(hours=24)
        stats = RecommendationStats()
        for rec in self.session.exec(
            select(Recommendation).where(Recommendation.owner_user_id == user_id)
        ).all():
            stats.total += 1
            if rec.type == RecommendationType.ACTIONABLE:
                stats.actionable += 1
            elif rec.type == RecommendationType.MONITOR:
                stats.monitor += 1
            elif rec.type == RecommendationType.CLARIFICATION:
                stats.clarification += 1
            if ensure_utc(rec.created_at) >= recent_cutoff:
                stats.recent += 1
        return stats
