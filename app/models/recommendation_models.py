"""ADPILOT — Recommendation & AI Response Models."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field as PydanticField, field_validator
from sqlmodel import SQLModel, Field

from app.core.timeutils import utcnow

CONSENSUS_PROVIDER_LABEL = "Multi-AI Consensus"


class RecommendationType(str, Enum):
    """Routes UI affordances: only actionable items offer one-click apply."""

    ACTIONABLE = "actionable"
    MONITOR = "monitor"
    CLARIFICATION = "clarification"


class RecommendationStatus(str, Enum):
    PENDING = "pending"
    APPLIED = "applied"
    DISMISSED = "dismissed"


# ─────────────────────────────────────────────
# DATABASE MODEL
# ─────────────────────────────────────────────


class Recommendation(SQLModel, table=True):
    """Stored recommendation. Applied and dismissed are terminal states."""

    __tablename__ = "recommendations"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_user_id: str = Field(index=True)
    campaign_id: int = Field(foreign_key="campaigns.id", index=True)
    type: RecommendationType = Field(default=RecommendationType.MONITOR)
    content: str
    confidence: int = Field(default=0, ge=0, le=100)
    provider: str
    status: RecommendationStatus = Field(default=RecommendationStatus.PENDING)
    is_applied: bool = False
    created_at: datetime = Field(default_factory=utcnow, index=True)
    resolved_at: Optional[datetime] = None


# ─────────────────────────────────────────────
# PYDANTIC SCHEMAS — provider output
# ─────────────────────────────────────────────


class ProviderResponse(BaseModel):
    """One adapter's answer. Ephemeral unless promoted to a Recommendation."""

    provider_name: str
    model_id: str
    text: str
    confidence: int = 0
    latency_ms: int = 0
    error: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value) -> int:
        try:
            value = int(round(float(value)))
        except (TypeError, ValueError):
            return 0
        return max(0, min(100, value))

    @property
    def is_usable(self) -> bool:
        return self.confidence > 0


class ConsensusResult(BaseModel):
    """Synthesized answer from several providers."""

    final_recommendation: str
    confidence: int = PydanticField(ge=0, le=100)
    agreement_level: int = PydanticField(ge=0, le=100)
    models: List[str]
    individual_responses: List[ProviderResponse] = []
    synthesized_by: Optional[str] = None
    reasoning: str = ""


class RecommendationStats(BaseModel):
    total: int = 0
    actionable: int = 0
    monitor: int = 0
    clarification: int = 0
    recent: int = 0


class GenerationSummary(BaseModel):
    """Outcome of a stored-campaign recommendation pass."""

    generated: int = 0
    errors: int = 0
    pruned: int = 0
