"""
Tests for micros conversion, enum normalization and derived ratios.
"""

from decimal import Decimal

import pytest

from app.core.metric_normalizer import (
    CampaignStatus,
    ChannelType,
    MetricKind,
    actual_cpa,
    actual_roas,
    field_kind,
    normalize_channel_type,
    normalize_count,
    normalize_micros,
    normalize_status,
)


def test_micros_to_currency():
    assert normalize_micros(5_000_000) == Decimal("5.00")
    assert normalize_micros("1234567") == Decimal("1.23")
    assert normalize_micros(1_235_000) == Decimal("1.24")  # half-up


def test_missing_micros_depends_on_kind():
    assert normalize_micros(None) == Decimal("0.00")
    assert normalize_micros(None, MetricKind.OPTIONAL_TARGET) is None
    assert normalize_micros(0, MetricKind.OPTIONAL_TARGET) == Decimal("0.00")


def test_unparseable_micros():
    assert normalize_micros("abc") == Decimal("0.00")
    assert normalize_micros("abc", MetricKind.OPTIONAL_TARGET) is None


def test_field_registry():
    assert field_kind("cost") == MetricKind.AGGREGABLE
    assert field_kind("target_cpa") == MetricKind.OPTIONAL_TARGET


@pytest.mark.parametrize(
    "raw,expected",
    [
        (2, ChannelType.SEARCH),
        ("2", ChannelType.SEARCH),
        ("SEARCH", ChannelType.SEARCH),
        ("performance_max", ChannelType.PERFORMANCE_MAX),
        (10, ChannelType.PERFORMANCE_MAX),
        ("MULTI_CHANNEL", ChannelType.APP),
        ("HOTEL", ChannelType.TRAVEL),
        ("LOCAL", ChannelType.LOCAL_SERVICES),
        ("DEMAND_GEN", ChannelType.DISCOVERY),
    ],
)
def test_channel_type_codes_and_labels(raw, expected):
    assert normalize_channel_type(raw) == expected


def test_unknown_channel_never_raises():
    assert normalize_channel_type(999) == ChannelType.UNKNOWN
    assert normalize_channel_type("HOLOGRAM") == ChannelType.UNKNOWN
    assert normalize_channel_type(None) == ChannelType.UNKNOWN


def test_status_codes_and_labels():
    assert normalize_status(2) == CampaignStatus.ENABLED
    assert normalize_status("PAUSED") == CampaignStatus.PAUSED
    assert normalize_status(4) == CampaignStatus.REMOVED
    assert normalize_status("ARCHIVED") == CampaignStatus.UNKNOWN


def test_counts():
    assert normalize_count("1000") == 1000
    assert normalize_count(None) == 0
    assert normalize_count(-5) == 0


def test_derived_ratios_null_on_zero_denominator():
    assert actual_cpa(Decimal("100.00"), Decimal("4")) == Decimal("25.00")
    assert actual_cpa(Decimal("100.00"), Decimal("0")) is None
    assert actual_roas(Decimal("250.00"), Decimal("100.00")) == Decimal("2.50")
    assert actual_roas(Decimal("250.00"), Decimal("0.00")) is None
