"""ADPILOT — Perplexity Provider.

Perplexity exposes an OpenAI-style chat-completions endpoint; it is called
directly over httpx rather than through a vendor SDK.
"""

from typing import Optional

import httpx

from app.ai.base_provider import AIProvider
from app.config import settings
from app.core.errors import TransientProviderError


class PerplexityProvider(AIProvider):
    """Perplexity chat-completions provider (default model: sonar)."""

    name = "perplexity"
    display_name = "Perplexity"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(model or settings.perplexity_model, timeout)
        self.api_key = api_key or settings.perplexity_api_key
        self.base_url = (base_url or settings.perplexity_base_url).rstrip("/")
        self._client = http_client

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        client = await self._get_client()
        resp = await client.post(
            f"{self.base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "max_tokens": 1000,
                "temperature": 0.4,
            },
        )
        if resp.status_code != 200:
            raise TransientProviderError(
                self.name, f"HTTP {resp.status_code}: {resp.text[:200]}"
            )
        choices = resp.json().get("choices") or []
        if not choices:
            return ""
        return choices[0].get("message", {}).get("content") or ""
