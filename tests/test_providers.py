"""
Tests for confidence extraction, provider adapters and the provider registry.
"""

from types import SimpleNamespace

import httpx
import pytest

from conftest import FakeProvider
from app.ai.claude_provider import ClaudeProvider
from app.ai.confidence import extract_confidence
from app.ai.openai_provider import OpenAIProvider
from app.ai.perplexity_provider import PerplexityProvider
from app.ai.registry import ProviderName, ProviderRegistry
from app.ai.sarvam_provider import SarvamProvider
from app.core.errors import ProviderUnavailableError, UnknownProviderError


# ── Confidence extraction ──


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Pause the keyword. Confidence: 82%", 82),
        ("confidence 64", 64),
        ("CONFIDENCE:150%", 100),
        ("I am confident this will work and it is likely to help.", 85),
        ("This might help, maybe.", 60),
        ("Raise the budget by 10%.", 75),
        ("I am uncertain.", 60),
        ("", 0),
    ],
)
def test_extract_confidence(text, expected):
    assert extract_confidence(text) == expected


# ── Base adapter behavior ──


@pytest.mark.anyio
async def test_generate_success():
    provider = FakeProvider("openai", text="Increase bids. Confidence: 70%")
    response = await provider.generate("What now?")

    assert response.provider_name == "openai"
    assert response.model_id == "openai-model"
    assert response.confidence == 70
    assert response.error is None
    assert response.is_usable


@pytest.mark.anyio
async def test_generate_never_raises_on_error():
    provider = FakeProvider("openai", error=RuntimeError("401 invalid api key"))
    response = await provider.generate("What now?")

    assert response.confidence == 0
    assert "401 invalid api key" in response.error
    assert not response.is_usable


@pytest.mark.anyio
async def test_generate_times_out():
    provider = FakeProvider("openai", delay=1.0, timeout=0.05)
    response = await provider.generate("What now?")

    assert response.confidence == 0
    assert "timed out" in response.error


@pytest.mark.anyio
async def test_unconfigured_provider_returns_placeholder():
    provider = FakeProvider("openai", available=False)
    response = await provider.generate("What now?")

    assert response.confidence == 0
    assert provider.calls == []


@pytest.mark.anyio
async def test_empty_text_is_not_usable():
    response = await FakeProvider("openai", text="   ").generate("What now?")
    assert response.confidence == 0


# ── Vendor adapters ──


@pytest.mark.anyio
async def test_openai_adapter_uses_chat_completions():
    captured = {}

    async def create(**kwargs):
        captured.update(kwargs)
        message = SimpleNamespace(content="Adjust bids. Confidence: 77%")
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    provider = OpenAIProvider(model="gpt-4o", client=client)

    response = await provider.generate("Lower CPA?")

    assert response.confidence == 77
    assert captured["model"] == "gpt-4o"
    assert captured["messages"][0]["role"] == "system"
    assert "Lower CPA?" in captured["messages"][1]["content"]


@pytest.mark.anyio
async def test_claude_adapter_reads_text_block():
    async def create(**kwargs):
        return SimpleNamespace(content=[SimpleNamespace(type="text", text="Monitor it. Confidence: 66%")])

    client = SimpleNamespace(messages=SimpleNamespace(create=create))
    response = await ClaudeProvider(model="claude-test", client=client).generate("Status?")

    assert response.confidence == 66
    assert response.model_id == "claude-test"


@pytest.mark.anyio
async def test_sarvam_adapter_sends_configured_model():
    captured = {}

    async def completions(**kwargs):
        captured.update(kwargs)
        message = SimpleNamespace(content="Shift budget. Confidence: 68%")
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    response = await SarvamProvider(model="sarvam-m", client=client).generate("Where?")

    assert captured["model"] == "sarvam-m"
    assert response.model_id == captured["model"]
    assert response.confidence == 68


@pytest.mark.anyio
async def test_perplexity_adapter_over_http():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer pplx-key"
        return httpx.Response(
            200,
            json={"choices": [{"message": {"content": "Pause it. Confidence: 71%"}}]},
        )

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    provider = PerplexityProvider(api_key="pplx-key", http_client=http_client)

    response = await provider.generate("Pause?")
    await provider.close()

    assert response.confidence == 71
    assert response.provider_name == "perplexity"


@pytest.mark.anyio
async def test_perplexity_http_error_is_zero_confidence():
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(429, text="rate limited"))
    )
    provider = PerplexityProvider(api_key="pplx-key", http_client=http_client)

    response = await provider.generate("Pause?")
    await provider.close()

    assert response.confidence == 0
    assert "429" in response.error


# ── Registry ──


def test_provider_name_parse():
    assert ProviderName.parse("OpenAI") == ProviderName.OPENAI
    with pytest.raises(UnknownProviderError):
        ProviderName.parse("gemini")


def test_registry_availability_in_declaration_order():
    registry = ProviderRegistry(
        {
            ProviderName.SARVAM: FakeProvider("sarvam"),
            ProviderName.OPENAI: FakeProvider("openai"),
            ProviderName.ANTHROPIC: FakeProvider("anthropic", available=False),
        }
    )
    assert registry.available_names() == ["openai", "sarvam"]
    assert registry.is_ready
    assert registry.consensus_ready


def test_registry_get_errors():
    registry = ProviderRegistry({ProviderName.OPENAI: FakeProvider("openai")})
    assert registry.get("openai").name == "openai"
    with pytest.raises(ProviderUnavailableError):
        registry.get("anthropic")
    with pytest.raises(UnknownProviderError):
        registry.get("gemini")


def test_registry_auto_falls_back_to_first_available():
    registry = ProviderRegistry({ProviderName.SARVAM: FakeProvider("sarvam")})
    assert registry.select("auto").name == "sarvam"
    empty = ProviderRegistry({})
    with pytest.raises(ProviderUnavailableError):
        empty.select("auto")
