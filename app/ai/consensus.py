"""ADPILOT — Multi-Provider Consensus Engine.

Fans one prompt out to every available provider concurrently, scores how much
the usable answers overlap, scales the mean confidence by that agreement and
synthesizes a single final answer.

The agreement level is a shared-vocabulary ratio. It is a cheap proxy for
overlap, not a measure of semantic agreement.
"""

import asyncio
import re
from statistics import mean
from typing import List, Optional, Tuple

from app.ai.base_provider import AIProvider
from app.ai.prompts import build_synthesis_prompt
from app.ai.registry import ProviderRegistry
from app.config import settings
from app.core.errors import (
    InsufficientProvidersError,
    ProviderUnavailableError,
    TransientProviderError,
    UnknownProviderError,
)
from app.core.logging import get_logger
from app.models.campaign_models import Campaign
from app.models.recommendation_models import ConsensusResult, ProviderResponse

logger = get_logger("ai.consensus")

MIN_USABLE_RESPONSES = 2
AGREEMENT_MULTIPLIER = 1.5
MIN_WORD_LENGTH = 4

_PUNCTUATION = re.compile(r"[^\w\s]")


def _vocabulary(text: str) -> set:
    words = _PUNCTUATION.sub("", text.lower()).split()
    return {w for w in words if len(w) >= MIN_WORD_LENGTH}


def agreement_level(texts: List[str]) -> int:
    """Share of distinct words used by at least two responses, ×1.5, capped at 100."""
    vocabularies = [_vocabulary(t) for t in texts]
    seen_in = {}
    for vocabulary in vocabularies:
        for word in vocabulary:
            seen_in[word] = seen_in.get(word, 0) + 1
    if not seen_in:
        return 0
    shared = sum(1 for count in seen_in.values() if count >= 2)
    return min(100, int(round(shared / len(seen_in) * 100 * AGREEMENT_MULTIPLIER)))


def consensus_confidence(confidences: List[int], agreement: int) -> int:
    return int(round(mean(confidences) * agreement / 100))


class ConsensusEngine:
    """Runs the fan-out, scoring and synthesis for one request."""

    def __init__(
        self,
        registry: ProviderRegistry,
        join_timeout: Optional[float] = None,
        synthesizer: Optional[str] = None,
    ):
        self.registry = registry
        self.join_timeout = (
            join_timeout if join_timeout is not None else settings.consensus_join_timeout_seconds
        )
        self.synthesizer = synthesizer or settings.consensus_provider

    async def _fan_out(
        self, providers: List[AIProvider], prompt: str, context: Optional[Campaign]
    ) -> List[ProviderResponse]:
        tasks = [asyncio.create_task(p.generate(prompt, context)) for p in providers]
        done, pending = await asyncio.wait(tasks, timeout=self.join_timeout)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        responses: List[ProviderResponse] = []
        for provider, task in zip(providers, tasks):
            if task in done and not task.cancelled() and task.exception() is None:
                responses.append(task.result())
                continue
            if task in done:
                error = TransientProviderError(provider.name, str(task.exception()))
            else:
                logger.warning(
                    f"{provider.display_name} missed the {self.join_timeout}s consensus window",
                    extra={"provider": provider.name},
                )
                error = TransientProviderError(
                    provider.name, f"no response within {self.join_timeout}s"
                )
            responses.append(provider.failed_response(error))
        return responses

    async def _synthesize(
        self, prompt: str, context: Optional[Campaign], usable: List[ProviderResponse]
    ) -> Tuple[str, str]:
        """Final text and who produced it."""
        try:
            synthesizer = self.registry.get(self.synthesizer)
        except (UnknownProviderError, ProviderUnavailableError) as e:
            logger.info(f"Synthesis provider unavailable ({e}), using top response")
            synthesizer = None

        if synthesizer is not None:
            result = await synthesizer.generate(
                build_synthesis_prompt(prompt, usable), context
            )
            if result.is_usable:
                return result.text, synthesizer.name
            logger.warning(
                f"Synthesis via {synthesizer.display_name} failed, using top response",
                extra={"provider": synthesizer.name},
            )

        # max() keeps the first of equal scores, i.e. declaration order
        best = max(usable, key=lambda r: r.confidence)
        return best.text, best.provider_name

    async def generate_with_consensus(
        self, prompt: str, context: Optional[Campaign] = None
    ) -> ConsensusResult:
        providers = self.registry.available()
        if len(providers) < MIN_USABLE_RESPONSES:
            raise InsufficientProvidersError(len(providers), len(providers))

        responses = await self._fan_out(providers, prompt, context)
        usable = [r for r in responses if r.is_usable]
        if len(usable) < MIN_USABLE_RESPONSES:
            raise InsufficientProvidersError(len(usable), len(responses))

        agreement = agreement_level([r.text for r in usable])
        confidence = consensus_confidence([r.confidence for r in usable], agreement)
        final_text, synthesized_by = await self._synthesize(prompt, context, usable)

        logger.info(
            f"Consensus from {len(usable)}/{len(responses)} providers: "
            f"{agreement}% agreement, {confidence}% confidence"
        )
        return ConsensusResult(
            final_recommendation=final_text,
            confidence=confidence,
            agreement_level=agreement,
            models=[r.provider_name for r in responses],
            individual_responses=responses,
            synthesized_by=synthesized_by,
            reasoning=(
                f"Consensus generated from {len(usable)} AI models "
                f"with {agreement}% agreement level."
            ),
        )
