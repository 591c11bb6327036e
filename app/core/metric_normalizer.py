"""ADPILOT — Metric Normalizer.

Converts platform-native encodings into canonical values:
  - fixed-point "micros" integers → Decimal currency (2 places)
  - channel-type / status enums (integer code OR string label) → typed enums

Every numeric campaign field is registered in CAMPAIGN_FIELDS with its kind,
so "not set" (None) and "set to zero" stay distinguishable for optional
targets while aggregable rollups always normalize to zero.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Optional

from app.core.logging import get_logger

logger = get_logger("normalizer")

MICROS_PER_UNIT = Decimal(1_000_000)
CURRENCY_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")


class ChannelType(str, Enum):
    """Canonical campaign channel."""

    SEARCH = "search"
    DISPLAY = "display"
    SHOPPING = "shopping"
    VIDEO = "video"
    APP = "app"
    SMART = "smart"
    PERFORMANCE_MAX = "performance_max"
    LOCAL_SERVICES = "local_services"
    DISCOVERY = "discovery"
    TRAVEL = "travel"
    UNKNOWN = "unknown"


class CampaignStatus(str, Enum):
    """Canonical campaign serving status."""

    ENABLED = "enabled"
    PAUSED = "paused"
    REMOVED = "removed"
    UNKNOWN = "unknown"


class MetricKind(str, Enum):
    """How a missing value normalizes."""

    AGGREGABLE = "aggregable"  # None → 0
    OPTIONAL_TARGET = "optional_target"  # None → None


# Google Ads AdvertisingChannelType enum numbering
_CHANNEL_CODES: Dict[int, ChannelType] = {
    2: ChannelType.SEARCH,
    3: ChannelType.DISPLAY,
    4: ChannelType.SHOPPING,
    5: ChannelType.TRAVEL,  # HOTEL
    6: ChannelType.VIDEO,
    7: ChannelType.APP,  # MULTI_CHANNEL (app campaigns)
    8: ChannelType.LOCAL_SERVICES,  # LOCAL
    9: ChannelType.SMART,
    10: ChannelType.PERFORMANCE_MAX,
    11: ChannelType.LOCAL_SERVICES,
    12: ChannelType.DISCOVERY,
    13: ChannelType.TRAVEL,
    14: ChannelType.DISCOVERY,  # DEMAND_GEN
}

_CHANNEL_LABELS: Dict[str, ChannelType] = {
    "SEARCH": ChannelType.SEARCH,
    "DISPLAY": ChannelType.DISPLAY,
    "SHOPPING": ChannelType.SHOPPING,
    "HOTEL": ChannelType.TRAVEL,
    "VIDEO": ChannelType.VIDEO,
    "MULTI_CHANNEL": ChannelType.APP,
    "APP": ChannelType.APP,
    "LOCAL": ChannelType.LOCAL_SERVICES,
    "SMART": ChannelType.SMART,
    "PERFORMANCE_MAX": ChannelType.PERFORMANCE_MAX,
    "LOCAL_SERVICES": ChannelType.LOCAL_SERVICES,
    "DISCOVERY": ChannelType.DISCOVERY,
    "DEMAND_GEN": ChannelType.DISCOVERY,
    "TRAVEL": ChannelType.TRAVEL,
}

# Google Ads CampaignStatus enum numbering
_STATUS_CODES: Dict[int, CampaignStatus] = {
    2: CampaignStatus.ENABLED,
    3: CampaignStatus.PAUSED,
    4: CampaignStatus.REMOVED,
}


# ─────────────────────────────────────────────
# CAMPAIGN FIELDS — Canonical Registry
# ─────────────────────────────────────────────

CAMPAIGN_FIELDS: Dict[str, MetricKind] = {
    "daily_budget": MetricKind.AGGREGABLE,
    "impressions": MetricKind.AGGREGABLE,
    "clicks": MetricKind.AGGREGABLE,
    "conversions": MetricKind.AGGREGABLE,
    "conversion_value": MetricKind.AGGREGABLE,
    "cost": MetricKind.AGGREGABLE,
    "target_cpa": MetricKind.OPTIONAL_TARGET,
    "target_roas": MetricKind.OPTIONAL_TARGET,
}


def field_kind(name: str) -> MetricKind:
    """Look up a campaign field's kind (unregistered fields are aggregable)."""
    return CAMPAIGN_FIELDS.get(name, MetricKind.AGGREGABLE)


# ─────────────────────────────────────────────
# ENUMS
# ─────────────────────────────────────────────


def _as_code(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    return None


def normalize_channel_type(raw: Any) -> ChannelType:
    """Map an integer code or string label to a ChannelType. Never raises."""
    if raw is None:
        return ChannelType.UNKNOWN
    if isinstance(raw, ChannelType):
        return raw
    code = _as_code(raw)
    if code is not None:
        channel = _CHANNEL_CODES.get(code)
    else:
        channel = _CHANNEL_LABELS.get(str(raw).strip().upper())
    if channel is None:
        logger.warning(f"Unknown channel type: {raw!r}")
        return ChannelType.UNKNOWN
    return channel


def normalize_status(raw: Any) -> CampaignStatus:
    """Map an integer code or string label to a CampaignStatus. Never raises."""
    if raw is None:
        return CampaignStatus.UNKNOWN
    if isinstance(raw, CampaignStatus):
        return raw
    code = _as_code(raw)
    if code is not None:
        status = _STATUS_CODES.get(code)
    else:
        try:
            status = CampaignStatus(str(raw).strip().lower())
        except ValueError:
            status = None
    if status is None:
        logger.warning(f"Unknown campaign status: {raw!r}")
        return CampaignStatus.UNKNOWN
    return status


# ─────────────────────────────────────────────
# NUMBERS
# ─────────────────────────────────────────────


def _to_decimal(raw: Any) -> Optional[Decimal]:
    """Safely convert a value to Decimal; None if it cannot be parsed."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


def normalize_micros(
    raw: Any, kind: MetricKind = MetricKind.AGGREGABLE
) -> Optional[Decimal]:
    """Convert a micros integer into currency rounded to 2 places.

    normalize_micros(5_000_000) == Decimal("5.00")
    normalize_micros(None) == Decimal("0.00")
    normalize_micros(None, MetricKind.OPTIONAL_TARGET) is None
    """
    value = _to_decimal(raw)
    if value is None:
        if raw is not None:
            logger.warning(f"Unparseable micros value: {raw!r}")
        return None if kind == MetricKind.OPTIONAL_TARGET else Decimal("0.00")
    return (value / MICROS_PER_UNIT).quantize(CURRENCY_PLACES, rounding=ROUND_HALF_UP)


def normalize_decimal(
    raw: Any,
    kind: MetricKind = MetricKind.AGGREGABLE,
    places: Decimal = CURRENCY_PLACES,
) -> Optional[Decimal]:
    """Convert a plain (non-micros) number into a rounded Decimal."""
    value = _to_decimal(raw)
    if value is None:
        return None if kind == MetricKind.OPTIONAL_TARGET else Decimal(0).quantize(places)
    return value.quantize(places, rounding=ROUND_HALF_UP)


def normalize_count(raw: Any) -> int:
    """Convert a count (impressions, clicks) into a non-negative int."""
    value = _to_decimal(raw)
    if value is None:
        return 0
    return max(int(value.to_integral_value(rounding=ROUND_HALF_UP)), 0)


def ratio(
    numerator: Decimal, denominator: Decimal, places: Decimal = CURRENCY_PLACES
) -> Optional[Decimal]:
    """numerator / denominator rounded, or None when the denominator is zero."""
    if not denominator:
        return None
    return (Decimal(numerator) / Decimal(denominator)).quantize(
        places, rounding=ROUND_HALF_UP
    )


def actual_cpa(cost: Decimal, conversions: Decimal) -> Optional[Decimal]:
    """Cost per acquisition; None when there are no conversions."""
    return ratio(cost, conversions)


def actual_roas(conversion_value: Decimal, cost: Decimal) -> Optional[Decimal]:
    """Return on ad spend; None when nothing was spent."""
    return ratio(conversion_value, cost)
