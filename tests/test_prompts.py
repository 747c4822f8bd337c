"""Tests for haiku_arena/prompts.py."""

import json

from haiku_arena.models import MatchConfig, Mode, Submission, SubmissionKind, Transcript
from haiku_arena.prompts import TOPICS_SCHEMA, build_opponent_prompt, parse_topics, render_history


def _sub(text: str, kind: SubmissionKind = SubmissionKind.AUTHORED) -> Submission:
    return Submission(text, kind)


def test_render_history_alternates_and_ends_with_pending_human():
    transcript = Transcript(
        human=(_sub("h1"), _sub("(Forfeited round)", SubmissionKind.FORFEITED)),
        opponent=(_sub("o1", SubmissionKind.GENERATED),),
    )
    assert render_history(transcript, "Saul Goodman") == (
        "User: h1\nSaul Goodman: o1\nUser: (Forfeited round)"
    )


def test_render_history_empty():
    assert render_history(Transcript(), "Saul Goodman") == ""


def test_build_opponent_prompt_without_twist(sample_persona, sample_prompts_config):
    config = MatchConfig(mode=Mode.FREE_FLOW, persona=sample_persona, topic="autumn")
    prompt = build_opponent_prompt(config, Transcript(human=(_sub("h1"),)), sample_prompts_config)
    assert prompt.startswith(sample_persona.instruction)
    assert "Topic: autumn" in prompt
    assert "twist" not in prompt
    assert "User: h1" in prompt


def test_bundled_opponent_template(sample_persona, settings_path):
    from config.config_loader import load_config

    prompts = load_config(settings_path).prompts
    config = MatchConfig(mode=Mode.KAMIKAZE, persona=sample_persona, topic="ducks", twist="Mention red.")
    prompt = build_opponent_prompt(config, Transcript(human=(_sub("h1"),)), prompts)
    assert 'The topic of the battle is "ducks".' in prompt
    assert 'You must also adhere to this twist: "Mention red.".' in prompt
    assert prompt.rstrip().endswith("Now, it's your turn. Write your haiku.")


def test_parse_topics_valid():
    text = json.dumps({"topics": [" A ", "B", "C", "D"]})
    assert parse_topics(text) == ["A", "B", "C"]


def test_parse_topics_rejects_bad_shapes():
    assert parse_topics("not json") is None
    assert parse_topics(json.dumps(["a", "b", "c"])) is None
    assert parse_topics(json.dumps({"topics": "a, b, c"})) is None
    assert parse_topics(json.dumps({"topics": ["a", "", 3, "b"]})) is None


def test_topics_schema_shape():
    assert TOPICS_SCHEMA["properties"]["topics"]["type"] == "array"
    assert TOPICS_SCHEMA["properties"]["topics"]["items"] == {"type": "string"}
