"""Integration tests — real API calls, no mocks. Requires .env with an API key."""

import os

import pytest
from dotenv import load_dotenv

load_dotenv()

_AVAILABLE_KEYS = [
    k for k in ["GEMINI_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY", "XAI_API_KEY"]
    if os.environ.get(k, "").strip()
]
pytestmark = pytest.mark.integration

if not _AVAILABLE_KEYS:
    pytestmark = pytest.mark.skip(reason="Need an API key, found none")


def _provider():
    from config.config_loader import load_config
    from haiku_arena.cli import _build_provider, _select_provider_name

    config = load_config()
    selected = _select_provider_name(config, None)
    assert selected is not None
    return config, _build_provider(config.providers[selected])


async def test_kamikaze_topics_are_parsed_from_live_reply():
    from haiku_arena.generation import generate_or_fallback
    from haiku_arena.prompts import TOPICS_SCHEMA, parse_topics

    config, provider = _provider()
    text, used_fallback = await generate_or_fallback(
        provider, config.prompts.topics, "", purpose="topics", response_schema=TOPICS_SCHEMA,
    )
    assert used_fallback is False
    topics = parse_topics(text)
    assert topics is not None and len(topics) == 3


async def test_free_flow_match_is_judged():
    """Play a full Free Flow match against a real opponent and a real judge."""
    from haiku_arena.models import Mode, SubmissionKind
    from haiku_arena.orchestrator import Battling, MatchOrchestrator, Result

    config, provider = _provider()
    orchestrator = MatchOrchestrator(provider, config)
    orchestrator.choose_mode(Mode.FREE_FLOW)
    assert await orchestrator.choose_opponent(next(iter(config.personas)))
    assert orchestrator.enter_topic("The final grain of sand")

    phase = orchestrator.phase
    assert isinstance(phase, Battling)
    haiku = "Hourglass neck grows thin\nthe last grain hesitates there\nthen the desert falls"
    for _ in range(3):
        assert await phase.engine.submit(haiku)

    result = await orchestrator.wait_for_result()
    assert isinstance(result, Result)
    assert result.transcript.rounds_played == 3
    assert all(s.kind is SubmissionKind.GENERATED for s in result.transcript.opponent)
    assert result.verdict
