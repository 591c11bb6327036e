"""ADPILOT — Campaign Models.

`Campaign` is the canonical local record. `NormalizedCampaign` is the closed,
typed shape produced at the normalization boundary: nothing untyped from the
platform gets past the transformer.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field as PydanticField
from sqlmodel import SQLModel, Field, UniqueConstraint

from app.core.metric_normalizer import CampaignStatus, ChannelType
from app.core.timeutils import utcnow


class Campaign(SQLModel, table=True):
    """Locally stored campaign with 7-day rollups.

    Unique constraint on (external_campaign_id, owner_user_id) is the upsert key.
    actual_cpa / actual_roas are always recomputed from the rollups at write time.
    """

    __tablename__ = "campaigns"
    __table_args__ = (
        UniqueConstraint(
            "external_campaign_id", "owner_user_id", name="uq_campaign_owner"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    external_campaign_id: str = Field(index=True)
    external_account_id: str = Field(
        index=True, description="Platform account ID (external_accounts.account_id)"
    )
    owner_user_id: str = Field(index=True)
    name: str
    channel_type: ChannelType = Field(default=ChannelType.UNKNOWN)
    status: CampaignStatus = Field(default=CampaignStatus.UNKNOWN)
    daily_budget: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)

    # 7-day rollups
    impressions: int = 0
    clicks: int = 0
    conversions: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    conversion_value: Decimal = Field(
        default=Decimal("0"), max_digits=14, decimal_places=2
    )
    cost: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    ctr: Decimal = Field(default=Decimal("0"), max_digits=8, decimal_places=4)
    avg_cpc: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    conversion_rate: Decimal = Field(
        default=Decimal("0"), max_digits=8, decimal_places=4
    )
    actual_cpa: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    actual_roas: Optional[Decimal] = Field(
        default=None, max_digits=10, decimal_places=2
    )

    # Owner-set goals
    target_cpa: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    target_roas: Optional[Decimal] = Field(
        default=None, max_digits=10, decimal_places=2
    )
    goal_description: Optional[str] = None
    burn_in_until: Optional[datetime] = None

    last_sync_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)


# ─────────────────────────────────────────────
# PYDANTIC SCHEMAS — normalization boundary
# ─────────────────────────────────────────────


class DateWindow(BaseModel):
    """Inclusive reporting window."""

    start: date
    end: date

    def as_gaql(self) -> str:
        return f"'{self.start.isoformat()}' AND '{self.end.isoformat()}'"


class NormalizedCampaign(BaseModel):
    """One campaign after normalization, ready for upsert."""

    external_campaign_id: str
    external_account_id: str
    name: str
    channel_type: ChannelType = ChannelType.UNKNOWN
    status: CampaignStatus = CampaignStatus.UNKNOWN
    daily_budget: Decimal = PydanticField(default=Decimal("0.00"), ge=0)
    impressions: int = PydanticField(default=0, ge=0)
    clicks: int = PydanticField(default=0, ge=0)
    conversions: Decimal = Decimal("0.00")
    conversion_value: Decimal = Decimal("0.00")
    cost: Decimal = Decimal("0.00")
    ctr: Decimal = Decimal("0.0000")
    avg_cpc: Decimal = Decimal("0.00")
    conversion_rate: Decimal = Decimal("0.0000")
    platform_target_cpa: Optional[Decimal] = None
    platform_target_roas: Optional[Decimal] = None


class CampaignGoalsUpdate(BaseModel):
    """Owner-editable goal fields."""

    target_cpa: Optional[Decimal] = PydanticField(default=None, ge=0)
    target_roas: Optional[Decimal] = PydanticField(default=None, ge=0)
    goal_description: Optional[str] = None
