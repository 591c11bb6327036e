"""ADPILOT — Anthropic Claude Provider."""

from typing import Optional
from anthropic import AsyncAnthropic

from app.ai.base_provider import AIProvider
from app.config import settings


class ClaudeProvider(AIProvider):
    """Anthropic Claude provider for campaign recommendations."""

    name = "anthropic"
    display_name = "Anthropic Claude"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[AsyncAnthropic] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(model or settings.anthropic_model, timeout)
        api_key = api_key or settings.anthropic_api_key
        self.client = client or (AsyncAnthropic(api_key=api_key) if api_key else None)

    def is_available(self) -> bool:
        return self.client is not None

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=1000,
            system=system_prompt,
            messages=[
                {"role": "user", "content": user_prompt},
            ],
        )
        if response.content and response.content[0].type == "text":
            return response.content[0].text
        return ""
