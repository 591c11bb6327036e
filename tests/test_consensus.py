"""
Tests for the consensus engine: agreement scoring, insufficient providers,
synthesis fallback and the bounded join.
"""

import pytest

from conftest import FakeProvider
from app.ai.consensus import ConsensusEngine, agreement_level, consensus_confidence
from app.ai.registry import ProviderName, ProviderRegistry
from app.core.errors import InsufficientProvidersError

IDENTICAL = "Increase the daily budget for brand campaigns. Confidence: 80%"


def registry_of(*providers):
    return ProviderRegistry({ProviderName(p.name): p for p in providers})


def test_agreement_identical_texts():
    assert agreement_level([IDENTICAL, IDENTICAL]) == 100


def test_agreement_disjoint_texts():
    assert agreement_level(["alpha bravo charlie", "delta foxtrot golf"]) == 0


def test_agreement_ignores_short_words_and_punctuation():
    # "the", "for" are too short; "budget," and "budget" are the same word
    assert agreement_level(["raise budget, now", "lower budget for the"]) == 50


def test_agreement_partial_overlap():
    # 1 shared word of 4 distinct → 25% × 1.5
    assert agreement_level(["pause keyword", "pause campaign bids"]) == 38


def test_agreement_empty():
    assert agreement_level(["a b", "c d"]) == 0


def test_consensus_confidence_scales_by_agreement():
    assert consensus_confidence([80, 60], 50) == 35
    assert consensus_confidence([80, 80], 100) == 80


@pytest.mark.anyio
async def test_identical_responses_give_full_agreement():
    openai = FakeProvider("openai", text=IDENTICAL)
    anthropic = FakeProvider("anthropic", text=IDENTICAL)
    engine = ConsensusEngine(registry_of(openai, anthropic), synthesizer="openai")

    result = await engine.generate_with_consensus("How do I scale?")

    assert result.agreement_level == 100
    assert result.confidence == 80
    assert result.models == ["openai", "anthropic"]
    assert result.synthesized_by == "openai"
    # fan-out call plus the synthesis call
    assert len(openai.calls) == 2
    assert "anthropic" in openai.calls[1]


@pytest.mark.anyio
async def test_disjoint_responses_give_zero_agreement():
    engine = ConsensusEngine(
        registry_of(
            FakeProvider("openai", text="alpha bravo charlie"),
            FakeProvider("anthropic", text="delta foxtrot golf"),
        ),
        synthesizer="perplexity",
    )

    result = await engine.generate_with_consensus("How do I scale?")

    assert result.agreement_level == 0
    assert result.confidence == 0


@pytest.mark.anyio
async def test_single_provider_is_insufficient():
    engine = ConsensusEngine(registry_of(FakeProvider("openai")))
    with pytest.raises(InsufficientProvidersError) as exc:
        await engine.generate_with_consensus("How do I scale?")
    assert exc.value.usable == 1


@pytest.mark.anyio
async def test_failed_provider_leaves_one_usable():
    engine = ConsensusEngine(
        registry_of(
            FakeProvider("openai"),
            FakeProvider("anthropic", error=RuntimeError("overloaded")),
        )
    )
    with pytest.raises(InsufficientProvidersError) as exc:
        await engine.generate_with_consensus("How do I scale?")
    assert exc.value.usable == 1
    assert exc.value.queried == 2


@pytest.mark.anyio
async def test_fallback_picks_highest_confidence_first_registered_on_tie():
    engine = ConsensusEngine(
        registry_of(
            FakeProvider("openai", text="Pause weak keywords. Confidence: 70%"),
            FakeProvider("anthropic", text="Shift budget to search. Confidence: 90%"),
            FakeProvider("sarvam", text="Raise bids on brand. Confidence: 90%"),
        ),
        synthesizer="perplexity",
    )

    result = await engine.generate_with_consensus("How do I scale?")

    assert result.final_recommendation == "Shift budget to search. Confidence: 90%"
    assert result.synthesized_by == "anthropic"


@pytest.mark.anyio
async def test_failed_synthesis_falls_back_to_top_response():
    openai = FakeProvider("openai", text=IDENTICAL)
    anthropic = FakeProvider("anthropic", text="Increase the daily budget. Confidence: 85%")
    engine = ConsensusEngine(registry_of(openai, anthropic), synthesizer="openai")

    # The fan-out succeeds; make the synthesis call fail
    original = openai._complete

    async def fail_on_synthesis(system_prompt, user_prompt):
        if "independent analysts" in user_prompt:
            raise RuntimeError("synthesis failed")
        return await original(system_prompt, user_prompt)

    openai._complete = fail_on_synthesis
    result = await engine.generate_with_consensus("How do I scale?")

    assert result.final_recommendation == "Increase the daily budget. Confidence: 85%"
    assert result.synthesized_by == "anthropic"


@pytest.mark.anyio
async def test_hung_provider_is_cut_off_but_reported():
    engine = ConsensusEngine(
        registry_of(
            FakeProvider("openai", text=IDENTICAL),
            FakeProvider("anthropic", text=IDENTICAL),
            FakeProvider("sarvam", text=IDENTICAL, delay=30.0, timeout=60.0),
        ),
        join_timeout=0.2,
        synthesizer="perplexity",
    )

    result = await engine.generate_with_consensus("How do I scale?")

    assert result.models == ["openai", "anthropic", "sarvam"]
    hung = result.individual_responses[2]
    assert hung.confidence == 0
    assert "no response within" in hung.error
    assert result.agreement_level == 100
