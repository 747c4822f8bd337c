"""Tests for haiku_arena/judging.py."""

import pytest

from haiku_arena.judging import DRAW_MARKER, build_judge_prompt, format_battle_log, verdict_is_draw
from haiku_arena.models import MatchConfig, Mode, Submission, SubmissionKind, Transcript


def _transcript(rounds: int) -> Transcript:
    return Transcript(
        human=tuple(Submission(f"human {i}", SubmissionKind.AUTHORED) for i in range(1, rounds + 1)),
        opponent=tuple(Submission(f"opponent {i}", SubmissionKind.GENERATED) for i in range(1, rounds + 1)),
    )


def test_format_battle_log_numbers_rounds():
    log = format_battle_log(_transcript(2), "Walter White")
    assert log == (
        "User, Round 1:\nhuman 1\n\n"
        "Walter White, Round 1:\nopponent 1\n\n"
        "User, Round 2:\nhuman 2\n\n"
        "Walter White, Round 2:\nopponent 2"
    )


def test_format_battle_log_unnumbered():
    log = format_battle_log(_transcript(1), "Walter White", numbered=False)
    assert log == "User:\nhuman 1\n\nWalter White:\nopponent 1"


def test_free_flow_prompt(sample_persona, sample_prompts_config):
    config = MatchConfig(mode=Mode.FREE_FLOW, persona=sample_persona, topic="autumn")
    prompt = build_judge_prompt(config, _transcript(3), sample_prompts_config)
    assert prompt.startswith("FREE FLOW")
    assert "Topic autumn" in prompt
    assert "6 haikus vs Tony Soprano" in prompt
    assert "Creativeness (80%), Structure (20%)" in prompt


def test_kamikaze_prompt_includes_twist(sample_persona, sample_prompts_config):
    config = MatchConfig(mode=Mode.KAMIKAZE, persona=sample_persona, topic="ducks", twist="Rhyme lines one and three.")
    prompt = build_judge_prompt(config, _transcript(3), sample_prompts_config)
    assert prompt.startswith("KAMIKAZE")
    assert "Twist Rhyme lines one and three." in prompt
    assert "Structure (10%)" in prompt


def test_tie_break_prompt_overrides_mode(sample_persona, sample_prompts_config):
    config = MatchConfig(mode=Mode.KAMIKAZE, persona=sample_persona, topic="a spoon", is_tie_break=True)
    prompt = build_judge_prompt(config, _transcript(1), sample_prompts_config)
    assert prompt.startswith("SUDDEN DEATH")
    assert "User:\nhuman 1" in prompt
    assert "Round 1" not in prompt


def test_bundled_templates_format(sample_persona, settings_path):
    from config.config_loader import load_config

    prompts = load_config(settings_path).prompts
    for mode, twist, tie_break in [
        (Mode.FREE_FLOW, None, False),
        (Mode.KAMIKAZE, "Mention red.", False),
        (Mode.FREE_FLOW, None, True),
    ]:
        config = MatchConfig(mode=mode, persona=sample_persona, topic="autumn", twist=twist, is_tie_break=tie_break)
        prompt = build_judge_prompt(config, _transcript(config.total_rounds), prompts)
        assert "Samurai" in prompt
        assert "{" not in prompt


@pytest.mark.parametrize(
    "verdict",
    ["The battle is a draw.", "THE BATTLE IS A DRAW", "This is not a draw, Tony wins."],
)
def test_verdict_is_draw_substring(verdict):
    assert verdict_is_draw(verdict)


@pytest.mark.parametrize("verdict", ["User wins.", "Drawn out, Saul wins.", "", "adraw"])
def test_verdict_is_not_draw(verdict):
    assert not verdict_is_draw(verdict)


def test_draw_marker():
    assert DRAW_MARKER == "a draw"
