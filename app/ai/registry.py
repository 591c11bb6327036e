"""ADPILOT — Provider Registry.

Built once from settings at startup. The set of available providers is
exactly those with credentials configured; declaration order of
ProviderName is the tie-break order everywhere.
"""

from enum import Enum
from typing import Dict, List, Optional

from app.ai.base_provider import AIProvider
from app.ai.claude_provider import ClaudeProvider
from app.ai.openai_provider import OpenAIProvider
from app.ai.perplexity_provider import PerplexityProvider
from app.ai.sarvam_provider import SarvamProvider
from app.config import settings
from app.core.errors import ProviderUnavailableError, UnknownProviderError
from app.core.logging import get_logger

logger = get_logger("ai.registry")

AUTO = "auto"


class ProviderName(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    PERPLEXITY = "perplexity"
    SARVAM = "sarvam"

    @classmethod
    def parse(cls, name: str) -> "ProviderName":
        """Case-insensitive lookup. Unknown names are an error, never a fallback."""
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            raise UnknownProviderError(name)


class ProviderRegistry:
    """Holds one adapter per ProviderName."""

    def __init__(self, providers: Dict[ProviderName, AIProvider]):
        # Re-key in declaration order
        self._providers: Dict[ProviderName, AIProvider] = {
            name: providers[name] for name in ProviderName if name in providers
        }

    def available(self) -> List[AIProvider]:
        return [p for p in self._providers.values() if p.is_available()]

    def available_names(self) -> List[str]:
        return [p.name for p in self.available()]

    @property
    def is_ready(self) -> bool:
        return len(self.available()) >= 1

    @property
    def consensus_ready(self) -> bool:
        return len(self.available()) >= 2

    def get(self, name: str) -> AIProvider:
        """Adapter for `name`; raises UnknownProviderError / ProviderUnavailableError."""
        provider_name = ProviderName.parse(name)
        provider = self._providers.get(provider_name)
        if provider is None or not provider.is_available():
            raise ProviderUnavailableError(provider_name.value)
        return provider

    def select(self, name: str = AUTO) -> AIProvider:
        """Like get(), plus 'auto': the configured default first, then any available."""
        if (name or AUTO).strip().lower() != AUTO:
            return self.get(name)
        try:
            return self.get(settings.consensus_provider)
        except (UnknownProviderError, ProviderUnavailableError):
            pass
        available = self.available()
        if not available:
            raise ProviderUnavailableError(AUTO)
        return available[0]


def build_registry() -> ProviderRegistry:
    """Instantiate every adapter from settings."""
    registry = ProviderRegistry(
        {
            ProviderName.OPENAI: OpenAIProvider(),
            ProviderName.ANTHROPIC: ClaudeProvider(),
            ProviderName.PERPLEXITY: PerplexityProvider(),
            ProviderName.SARVAM: SarvamProvider(),
        }
    )
    names = registry.available_names()
    if names:
        logger.info(f"🤖 AI providers available: {', '.join(names)}")
    else:
        logger.warning("No AI provider configured. Recommendations are disabled.")
    return registry


_registry: Optional[ProviderRegistry] = None


def get_registry() -> ProviderRegistry:
    """Process-wide registry (FastAPI dependency)."""
    global _registry
    if _registry is None:
        _registry = build_registry()
    return _registry
