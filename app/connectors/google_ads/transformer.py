"""ADPILOT — Google Ads Raw → Normalized Transformer.

Converts raw campaign-performance rows into closed NormalizedCampaign records
using the metric normalizer. Several rows for one campaign (e.g. one per day)
are summed into a single 7-day rollup; rates are derived from the sums.
"""

from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, List

from app.core.logging import get_logger
from app.core.metric_normalizer import (
    CURRENCY_PLACES,
    RATE_PLACES,
    MetricKind,
    field_kind,
    normalize_channel_type,
    normalize_count,
    normalize_decimal,
    normalize_micros,
    normalize_status,
    ratio,
)
from app.models.account_models import ResolvedAccount
from app.models.campaign_models import NormalizedCampaign

logger = get_logger("google_ads.transformer")


def _sum_raw(rows: List[Dict[str, Any]], section: str, key: str) -> Decimal:
    """Sum one raw metric across rows, skipping unparseable values."""
    total = Decimal(0)
    for row in rows:
        value = normalize_decimal(
            row.get(section, {}).get(key), MetricKind.OPTIONAL_TARGET, Decimal("0.000001")
        )
        if value is not None:
            total += value
    return total


def _campaign_name(raw_name: str, account: ResolvedAccount) -> str:
    """Manager-child campaigns carry the client account name as a prefix."""
    if account.parent_account_id and account.display_name:
        return f"{account.display_name} - {raw_name}"
    return raw_name


def _normalize_group(
    campaign_id: str, rows: List[Dict[str, Any]], account: ResolvedAccount
) -> NormalizedCampaign:
    latest = rows[-1]
    campaign = latest.get("campaign", {})
    budget = latest.get("campaignBudget", {})

    impressions = normalize_count(_sum_raw(rows, "metrics", "impressions"))
    clicks = normalize_count(_sum_raw(rows, "metrics", "clicks"))
    conversions = normalize_decimal(_sum_raw(rows, "metrics", "conversions"))
    conversion_value = normalize_decimal(_sum_raw(rows, "metrics", "conversionsValue"))
    cost = normalize_micros(_sum_raw(rows, "metrics", "costMicros"), field_kind("cost"))

    daily_budget = normalize_micros(budget.get("amountMicros"), field_kind("daily_budget"))
    if daily_budget < 0:
        logger.warning(f"Negative budget for campaign {campaign_id}, clamping to 0")
        daily_budget = Decimal("0.00")

    return NormalizedCampaign(
        external_campaign_id=campaign_id,
        external_account_id=account.account_id,
        name=_campaign_name(campaign.get("name") or f"Campaign {campaign_id}", account),
        channel_type=normalize_channel_type(campaign.get("advertisingChannelType")),
        status=normalize_status(campaign.get("status")),
        daily_budget=daily_budget,
        impressions=impressions,
        clicks=clicks,
        conversions=conversions,
        conversion_value=conversion_value,
        cost=cost,
        ctr=ratio(Decimal(clicks), Decimal(impressions), RATE_PLACES) or Decimal("0.0000"),
        avg_cpc=ratio(cost, Decimal(clicks), CURRENCY_PLACES) or Decimal("0.00"),
        conversion_rate=ratio(conversions, Decimal(clicks), RATE_PLACES)
        or Decimal("0.0000"),
        platform_target_cpa=normalize_micros(
            campaign.get("targetCpa", {}).get("targetCpaMicros"),
            field_kind("target_cpa"),
        ),
        platform_target_roas=normalize_decimal(
            campaign.get("targetRoas", {}).get("targetRoas"),
            field_kind("target_roas"),
        ),
    )


def transform_campaign_rows(
    raw_rows: List[Dict[str, Any]], account: ResolvedAccount
) -> List[NormalizedCampaign]:
    """Transform raw campaign rows for one account into normalized records.

    Output order follows first appearance of each campaign ID, so the same
    input always produces the same records in the same order.
    """
    groups: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
    for row in raw_rows:
        campaign_id = str(row.get("campaign", {}).get("id", "")).strip()
        if not campaign_id:
            logger.warning(
                "Skipping campaign row without an ID",
                extra={"account_id": account.account_id},
            )
            continue
        groups.setdefault(campaign_id, []).append(row)

    normalized = [
        _normalize_group(campaign_id, rows, account)
        for campaign_id, rows in groups.items()
    ]
    logger.info(
        f"Normalized {len(normalized)} campaigns from {len(raw_rows)} rows",
        extra={"account_id": account.account_id},
    )
    return normalized
