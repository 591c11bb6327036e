"""ADPILOT — Sarvam AI Provider."""

from typing import Optional
from sarvamai import AsyncSarvamAI

from app.ai.base_provider import AIProvider
from app.config import settings


class SarvamProvider(AIProvider):
    """Sarvam AI provider; model from settings.sarvam_model (default sarvam-m)."""

    name = "sarvam"
    display_name = "Sarvam AI"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[AsyncSarvamAI] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(model or settings.sarvam_model, timeout)
        api_key = api_key or settings.sarvam_api_key
        self.client = client or (
            AsyncSarvamAI(api_subscription_key=api_key) if api_key else None
        )

    def is_available(self) -> bool:
        return self.client is not None

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        response = await self.client.chat.completions(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.3,
            max_tokens=1000,
        )
        return response.choices[0].message.content or ""
