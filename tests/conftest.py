"""Shared pytest fixtures."""

from pathlib import Path
from types import MappingProxyType
from typing import Any
from unittest.mock import AsyncMock

import pytest

from config.config_loader import (
    AppConfig,
    DefaultsConfig,
    FallbacksConfig,
    PromptsConfig,
    ProviderConfig,
    TimingConfig,
)
from haiku_arena.models import MatchConfig, Mode, ModelResponse, Persona
from haiku_arena.providers.base import AIProvider


def make_response(content: str, provider: str = "mock", purpose: str = "") -> ModelResponse:
    return ModelResponse(
        provider=provider,
        model="mock-model",
        content=content,
        latency_sec=0.1,
        token_count=10,
        purpose=purpose,
    )


@pytest.fixture
def sample_provider_config() -> ProviderConfig:
    return ProviderConfig(
        name="test_model",
        sdk="gemini",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        opponent="{instruction} Topic: {topic}. {twist_instruction}\nHistory:\n{history}\nYour turn.",
        topics="Give three haiku topics.",
        twist="Give one haiku constraint.",
        tie_break_topic="Give one tie-break topic.",
        judge_free_flow="FREE FLOW. Topic {topic}. {haiku_count} haikus vs {opponent}:\n{battle_log}\nCreativeness (80%), Structure (20%).",
        judge_kamikaze="KAMIKAZE. Topic {topic}. Twist {twist}. {haiku_count} haikus vs {opponent}:\n{battle_log}\nTopic (30%), Creativeness (30%), Twist (30%), Structure (10%).",
        judge_tie_break="SUDDEN DEATH. Topic {topic}. vs {opponent}:\n{battle_log}\nThere cannot be another draw.",
    )


@pytest.fixture
def sample_fallbacks_config() -> FallbacksConfig:
    return FallbacksConfig(
        opponent_haiku="My mind is a blank,\nA void where words should have been,\nI have failed this round.",
        forfeit="(Forfeited round)",
        topics=["The silence of an empty library", "A vending machine in the desert", "The last leaf of autumn"],
        twist="Your haikus must mention the color red.",
        tie_break_topic="The final grain of sand",
        verdict="The Samurai is deep in thought and cannot be reached. The battle is a draw.",
    )


@pytest.fixture
def sample_timing_config() -> TimingConfig:
    return TimingConfig(round_sec=60, tie_break_round_sec=45, reveal_delay_sec=0)


@pytest.fixture
def sample_persona() -> Persona:
    return Persona(
        name="Tony Soprano",
        difficulty="Hard",
        temperature=0.9,
        description="Prone to sudden mood swings.",
        instruction="You are Tony Soprano. You are writing a haiku.",
    )


@pytest.fixture
def sample_app_config(
    sample_prompts_config: PromptsConfig,
    sample_fallbacks_config: FallbacksConfig,
    sample_timing_config: TimingConfig,
    sample_persona: Persona,
) -> AppConfig:
    provider_cfg = ProviderConfig(
        name="gemini",
        sdk="gemini",
        model="gemini-2.5-flash",
        api_key_env="GEMINI_API_KEY",
        timeout_sec=60,
        max_tokens=1024,
    )
    saul = Persona(
        name="Saul Goodman",
        difficulty="Medium",
        temperature=0.95,
        description="A fast-talking whirlwind.",
        instruction="You are Saul Goodman.",
    )
    return AppConfig(
        defaults=DefaultsConfig(provider="gemini"),
        timing=sample_timing_config,
        providers={"gemini": provider_cfg},
        prompts=sample_prompts_config,
        fallbacks=sample_fallbacks_config,
        personas=MappingProxyType({"tony": sample_persona, "saul": saul}),
        available_providers={"gemini"},
    )


@pytest.fixture
def free_flow_config(sample_persona: Persona) -> MatchConfig:
    return MatchConfig(mode=Mode.FREE_FLOW, persona=sample_persona, topic="autumn")


@pytest.fixture
def tie_break_config(sample_persona: Persona) -> MatchConfig:
    return MatchConfig(mode=Mode.FREE_FLOW, persona=sample_persona, topic="A single key", is_tie_break=True)


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(  # type: ignore[assignment]
            return_value=make_response(response_content, provider_name)
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(  # type: ignore[override]
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        response_schema: dict[str, Any] | None = None,
        purpose: str = "",
    ) -> ModelResponse:
        """Default implementation; replaced by AsyncMock in __init__."""
        return make_response(self._response_content, self._name, purpose)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def settings_path() -> Path:
    return Path(__file__).parent.parent / "config" / "settings.yaml"
