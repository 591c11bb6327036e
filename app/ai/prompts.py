"""ADPILOT — Prompt Builders.

Plain f-string builders. Providers receive SYSTEM_PROMPT plus a user message
that embeds the campaign metrics JSON, the owner's goals and the request.
"""

import json
from typing import List, Optional

from app.config import settings
from app.models.campaign_models import Campaign
from app.models.recommendation_models import ProviderResponse

SYSTEM_PROMPT = f"""You are ADPILOT, a senior Google Ads strategist for the Indian market.
All currency is {settings.account_currency}; never convert it.

Every answer must pick exactly one action type:
- CHANGE: a specific change with exact values and numbered implementation steps
  (budget shift, bid adjustment, negative keywords, targeting, CPA/ROAS targets).
- WAIT: monitor, naming the metrics to watch and for how long.
- CLARIFY: ask for the missing information, suggesting what to explore.

RULES:
1. Reference the campaign by name and quote its metrics exactly as given.
2. Do not invent numbers that are not in the data.
3. If the campaign is in a burn-in period after a recent change, prefer WAIT.
4. State the expected, measurable outcome and a monitoring plan.
5. End with a line of the form "Confidence: NN%" (0-100, based on data strength).

Keep it under 400 words. Use bullet points where helpful.
"""


def campaign_context(campaign: Optional[Campaign]) -> str:
    """Metrics JSON for one stored campaign."""
    if campaign is None:
        return "No specific campaign selected"
    return json.dumps(
        {
            "name": campaign.name,
            "channelType": campaign.channel_type,
            "status": campaign.status,
            "dailyBudget": campaign.daily_budget,
            "impressions7d": campaign.impressions,
            "clicks7d": campaign.clicks,
            "spend7d": campaign.cost,
            "conversions7d": campaign.conversions,
            "conversionValue7d": campaign.conversion_value,
            "ctr": campaign.ctr,
            "avgCpc": campaign.avg_cpc,
            "actualCpa": campaign.actual_cpa,
            "actualRoas": campaign.actual_roas,
            "targetCpa": campaign.target_cpa,
            "targetRoas": campaign.target_roas,
            "burnInUntil": campaign.burn_in_until,
        },
        default=str,
    )


def campaign_goals(campaign: Optional[Campaign]) -> str:
    if campaign is None:
        return "General optimization for the Indian market"
    parts = []
    if campaign.target_cpa is not None:
        parts.append(f"Target CPA: {settings.account_currency} {campaign.target_cpa}")
    if campaign.target_roas is not None:
        parts.append(f"Target ROAS: {campaign.target_roas}x")
    if campaign.goal_description:
        parts.append(campaign.goal_description)
    return " | ".join(parts) or "No specific goals set"


def build_user_prompt(
    prompt: str, campaign: Optional[Campaign] = None, mode: str = "quick ideas"
) -> str:
    return (
        f"Mode: {mode}\n\n"
        f"Campaign metrics:\n{campaign_context(campaign)}\n\n"
        f"Goals: {campaign_goals(campaign)}\n\n"
        f"Request: {prompt}"
    )


def build_synthesis_prompt(prompt: str, responses: List[ProviderResponse]) -> str:
    """Ask for one prioritized answer reconciling every individual response."""
    sections = "\n\n".join(
        f"## {r.provider_name} ({r.model_id}) analysis, {r.confidence}% confidence:\n{r.text}"
        for r in responses
    )
    return (
        f"{len(responses)} independent analysts answered the request below.\n"
        f"Synthesize one prioritized recommendation. Keep what they agree on, "
        f"say where they disagree and which view the data supports.\n\n"
        f"Original request: {prompt}\n\n"
        f"{sections}"
    )
