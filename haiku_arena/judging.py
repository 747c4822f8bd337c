"""Judgment: build the Samurai's prompt and read the verdict."""

from config.config_loader import PromptsConfig
from haiku_arena.models import MatchConfig, Mode, Transcript

# Case-insensitive substring test; "not a draw" matches too.
DRAW_MARKER = "a draw"


def format_battle_log(transcript: Transcript, opponent_name: str, *, numbered: bool = True) -> str:
    """Format both participants' haikus round by round for the judge."""
    parts: list[str] = []
    for i, (human, opponent) in enumerate(zip(transcript.human, transcript.opponent), start=1):
        suffix = f", Round {i}" if numbered else ""
        parts.append(f"User{suffix}:\n{human.text}")
        parts.append(f"{opponent_name}{suffix}:\n{opponent.text}")
    return "\n\n".join(parts)


def build_judge_prompt(config: MatchConfig, transcript: Transcript, prompts: PromptsConfig) -> str:
    """Pick the judging template for the match context and fill it in.

    Free Flow weighs creativity 80 / structure 20; Kamikaze weighs topic,
    creativity and twist 30 each with structure 10; a tie-break forbids a draw.
    """
    opponent = config.persona.name
    if config.is_tie_break:
        return prompts.judge_tie_break.format(
            topic=config.topic,
            opponent=opponent,
            battle_log=format_battle_log(transcript, opponent, numbered=False),
        )

    template = prompts.judge_kamikaze if config.mode is Mode.KAMIKAZE else prompts.judge_free_flow
    return template.format(
        topic=config.topic,
        twist=config.twist or "",
        opponent=opponent,
        haiku_count=len(transcript.human) + len(transcript.opponent),
        battle_log=format_battle_log(transcript, opponent),
    )


def verdict_is_draw(verdict: str) -> bool:
    return DRAW_MARKER in verdict.lower()
