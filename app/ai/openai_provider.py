"""ADPILOT — OpenAI Provider."""

from typing import Optional
from openai import AsyncOpenAI

from app.ai.base_provider import AIProvider
from app.config import settings


class OpenAIProvider(AIProvider):
    """OpenAI chat-completions provider (default model: gpt-4o)."""

    name = "openai"
    display_name = "OpenAI"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(model or settings.openai_model, timeout)
        api_key = api_key or settings.openai_api_key
        self.client = client or (AsyncOpenAI(api_key=api_key) if api_key else None)

    def is_available(self) -> bool:
        return self.client is not None

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.4,
            max_tokens=1000,
        )
        return response.choices[0].message.content or ""
