"""ADPILOT — Google Ads Query Language (GAQL) statements."""

CHILD_ACCOUNTS_QUERY = """
SELECT
  customer_client.id,
  customer_client.descriptive_name,
  customer_client.manager,
  customer_client.test_account,
  customer_client.status
FROM customer_client
WHERE customer_client.status = 'ENABLED'
  AND customer_client.manager = false
  AND customer_client.test_account = false
""".strip()

CAMPAIGN_PERFORMANCE_QUERY = """
SELECT
  campaign.id,
  campaign.name,
  campaign.status,
  campaign.advertising_channel_type,
  campaign_budget.amount_micros,
  campaign.target_cpa.target_cpa_micros,
  campaign.target_roas.target_roas,
  metrics.impressions,
  metrics.clicks,
  metrics.conversions,
  metrics.conversions_value,
  metrics.cost_micros
FROM campaign
WHERE campaign.status = 'ENABLED'
  AND segments.date BETWEEN {window}
""".strip()


def normalize_customer_id(customer_id: str) -> str:
    """Strip dashes/spaces: '123-456-7890' → '1234567890'."""
    return "".join(ch for ch in str(customer_id) if ch.isdigit())
