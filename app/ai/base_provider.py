"""ADPILOT — Abstract AI Provider."""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Optional

from app.ai.confidence import extract_confidence
from app.ai.prompts import SYSTEM_PROMPT, build_user_prompt
from app.config import settings
from app.core.errors import TransientProviderError
from app.core.logging import get_logger
from app.models.campaign_models import Campaign
from app.models.recommendation_models import ProviderResponse

logger = get_logger("ai.provider")


class AIProvider(ABC):
    """Uniform wrapper around one vendor's text-generation call.

    Subclasses translate (system, user) prompts into one vendor request in
    `_complete`. `generate` never raises: transport, auth and timeout errors
    come back as zero-confidence responses so consensus can exclude them.
    """

    name: str = ""
    display_name: str = ""

    def __init__(self, model: str, timeout: Optional[float] = None):
        self.model = model
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider is configured and ready."""
        ...

    @abstractmethod
    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        """Issue one vendor call and return the response text."""
        ...

    def failed_response(self, error: Exception, latency_ms: int = 0) -> ProviderResponse:
        return ProviderResponse(
            provider_name=self.name,
            model_id=self.model,
            text=f"{self.display_name} could not produce a recommendation: {error}",
            confidence=0,
            latency_ms=latency_ms,
            error=str(error),
        )

    async def generate(
        self, prompt: str, context: Optional[Campaign] = None
    ) -> ProviderResponse:
        if not self.is_available():
            return self.failed_response(
                TransientProviderError(self.name, "provider not configured")
            )

        start = time.monotonic()
        try:
            text = await asyncio.wait_for(
                self._complete(SYSTEM_PROMPT, build_user_prompt(prompt, context)),
                timeout=self.timeout,
            )
            if not text or not text.strip():
                raise TransientProviderError(self.name, "empty response")
        except asyncio.TimeoutError:
            latency_ms = int((time.monotonic() - start) * 1000)
            logger.warning(
                f"{self.display_name} timed out after {self.timeout}s",
                extra={"provider": self.name, "duration_ms": latency_ms},
            )
            return self.failed_response(
                TransientProviderError(self.name, f"timed out after {self.timeout}s"),
                latency_ms,
            )
        except Exception as e:
            latency_ms = int((time.monotonic() - start) * 1000)
            logger.error(
                f"{self.display_name} generation failed: {e}",
                extra={"provider": self.name, "duration_ms": latency_ms},
            )
            error = e if isinstance(e, TransientProviderError) else TransientProviderError(self.name, str(e))
            return self.failed_response(error, latency_ms)

        latency_ms = int((time.monotonic() - start) * 1000)
        confidence = extract_confidence(text)
        logger.info(
            f"{self.display_name} responded ({confidence}% confidence)",
            extra={"provider": self.name, "duration_ms": latency_ms},
        )
        return ProviderResponse(
            provider_name=self.name,
            model_id=self.model,
            text=text.strip(),
            confidence=confidence,
            latency_ms=latency_ms,
        )
