"""ADPILOT — Google Ads API Client.

Handles OAuth refresh-token exchange, retry logic, rate limiting, and
pagination against the Google Ads REST `googleAds:search` endpoint.
Rows are returned raw (camelCase JSON, numbers often as strings); the
transformer is responsible for normalizing them.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.connectors.google_ads.queries import (
    CAMPAIGN_PERFORMANCE_QUERY,
    CHILD_ACCOUNTS_QUERY,
    normalize_customer_id,
)
from app.core.errors import AdsAuthError, AdsPlatformError
from app.core.logging import get_logger
from app.models.account_models import AdsCredential
from app.models.campaign_models import DateWindow

logger = get_logger("google_ads.client")

ADS_BASE = f"{settings.google_ads_base_url}/{settings.google_ads_api_version}"
MAX_RETRIES = 3
RETRY_BASE_DELAY = 2  # seconds
TOKEN_EXPIRY_MARGIN = 60  # seconds


class GoogleAdsClient:
    """Async HTTP client for the Google Ads API, bound to one root credential."""

    def __init__(
        self,
        refresh_token: str,
        login_customer_id: Optional[str] = None,
        developer_token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.refresh_token = refresh_token
        self.login_customer_id = (
            normalize_customer_id(login_customer_id) if login_customer_id else None
        )
        self.developer_token = developer_token or settings.google_ads_developer_token
        self._client: Optional[httpx.AsyncClient] = http_client
        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0

    @classmethod
    def from_credential(cls, credential: AdsCredential) -> "GoogleAdsClient":
        return cls(
            refresh_token=credential.refresh_token,
            login_customer_id=credential.root_account_id,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=30.0)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── OAuth ──

    async def _get_access_token(self) -> str:
        """Exchange the refresh token for an access token, cached until expiry."""
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        client = await self._get_client()
        try:
            resp = await client.post(
                settings.google_oauth_token_url,
                data={
                    "client_id": settings.google_ads_client_id,
                    "client_secret": settings.google_ads_client_secret,
                    "refresh_token": self.refresh_token,
                    "grant_type": "refresh_token",
                },
            )
        except httpx.RequestError as e:
            raise AdsAuthError(f"Token endpoint unreachable: {e}") from e

        if resp.status_code != 200:
            body = _json_or_empty(resp)
            raise AdsAuthError(
                body.get("error_description") or body.get("error") or resp.text,
                resp.status_code,
                str(body.get("error", "")),
            )

        payload = _json_or_empty(resp)
        if "access_token" not in payload:
            raise AdsAuthError("Token endpoint returned no access_token", resp.status_code)
        self._access_token = payload["access_token"]
        expires_in = int(payload.get("expires_in", 3600))
        self._token_expires_at = time.monotonic() + expires_in - TOKEN_EXPIRY_MARGIN
        return self._access_token

    async def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {await self._get_access_token()}",
            "developer-token": self.developer_token,
            "Content-Type": "application/json",
        }
        if self.login_customer_id:
            headers["login-customer-id"] = self.login_customer_id
        return headers

    # ── Core Request Method ──

    async def _request(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST with retry + rate-limit handling."""
        client = await self._get_client()

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                resp = await client.post(url, json=body, headers=await self._headers())

                # Rate limited
                if resp.status_code == 429:
                    wait = RETRY_BASE_DELAY * (2 ** (attempt - 1))
                    logger.warning(
                        f"Rate limited (429). Retrying in {wait}s (attempt {attempt}/{MAX_RETRIES})"
                    )
                    await asyncio.sleep(wait)
                    continue

                resp.raise_for_status()
                return _decode(resp)

            except httpx.HTTPStatusError as e:
                error = _json_or_empty(e.response).get("error")
                if not isinstance(error, dict):
                    error = {}
                error_msg = error.get("message", str(e))
                error_code = error.get("status", "")

                if attempt < MAX_RETRIES and e.response.status_code >= 500:
                    wait = RETRY_BASE_DELAY * (2 ** (attempt - 1))
                    logger.warning(
                        f"Server error {e.response.status_code}. Retrying in {wait}s"
                    )
                    await asyncio.sleep(wait)
                    continue

                if e.response.status_code == 401:
                    self._access_token = None
                    raise AdsAuthError(error_msg, 401, error_code) from e
                raise AdsPlatformError(
                    error_msg, e.response.status_code, error_code
                ) from e

            except httpx.RequestError as e:
                if attempt < MAX_RETRIES:
                    wait = RETRY_BASE_DELAY * (2 ** (attempt - 1))
                    logger.warning(f"Request error: {e}. Retrying in {wait}s")
                    await asyncio.sleep(wait)
                    continue
                raise AdsPlatformError(
                    f"Connection failed after {MAX_RETRIES} retries: {e}"
                ) from e

        raise AdsPlatformError("Max retries exhausted")

    # ── Pagination ──

    async def search(
        self, customer_id: str, query: str, max_pages: int = 50
    ) -> List[Dict[str, Any]]:
        """Run a GAQL query and collect every page of results."""
        url = f"{ADS_BASE}/customers/{normalize_customer_id(customer_id)}/googleAds:search"
        rows: List[Dict[str, Any]] = []
        body: Dict[str, Any] = {"query": query}

        for _ in range(max_pages):
            result = await self._request(url, body)
            rows.extend(result.get("results", []))
            next_token = result.get("nextPageToken")
            if not next_token:
                break
            body = {"query": query, "pageToken": next_token}

        logger.info(f"Fetched {len(rows)} rows for customer {customer_id}")
        return rows

    # ── Collaborator interface ──

    async def list_child_accounts(self, root_id: str) -> List[Dict[str, Any]]:
        """Enabled, non-manager, non-test client accounts under root_id."""
        return await self.search(root_id, CHILD_ACCOUNTS_QUERY)

    async def query_campaigns(
        self, account_id: str, window: DateWindow
    ) -> List[Dict[str, Any]]:
        """Enabled campaigns of one account with metrics over the window."""
        query = CAMPAIGN_PERFORMANCE_QUERY.format(window=window.as_gaql())
        return await self.search(account_id, query)


def _decode(response: httpx.Response) -> Dict[str, Any]:
    """A 200 that is not a JSON object (proxy error page, truncated body) is a platform error."""
    try:
        body = response.json()
    except ValueError as e:
        raise AdsPlatformError(
            f"Unreadable response body: {e}", response.status_code, "INVALID_RESPONSE"
        ) from e
    if not isinstance(body, dict):
        raise AdsPlatformError(
            "Unexpected response shape", response.status_code, "INVALID_RESPONSE"
        )
    return body


def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
    if response.headers.get("content-type", "").startswith("application/json"):
        try:
            return response.json()
        except ValueError:
            return {}
    return {}
