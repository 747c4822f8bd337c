"""Prompt composition for the opponent and the topic draw."""

import json
import logging

from config.config_loader import PromptsConfig
from haiku_arena.models import MatchConfig, Transcript

logger = logging.getLogger(__name__)

TOPICS_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "topics": {
            "type": "array",
            "items": {"type": "string"},
        },
    },
    "required": ["topics"],
}


def render_history(transcript: Transcript, opponent_name: str) -> str:
    """Render submissions so far as alternating 'User: ...' / '<opponent>: ...' lines."""
    lines: list[str] = []
    for i, human in enumerate(transcript.human):
        lines.append(f"User: {human.text}")
        if i < len(transcript.opponent):
            lines.append(f"{opponent_name}: {transcript.opponent[i].text}")
    return "\n".join(lines)


def build_opponent_prompt(config: MatchConfig, transcript: Transcript, prompts: PromptsConfig) -> str:
    twist_instruction = (
        f'You must also adhere to this twist: "{config.twist}".' if config.twist else ""
    )
    return prompts.opponent.format(
        instruction=config.persona.instruction,
        topic=config.topic,
        twist_instruction=twist_instruction,
        history=render_history(transcript, config.persona.name),
    )


def parse_topics(text: str) -> list[str] | None:
    """Extract three topics from a structured topic-draw reply.

    Returns None when the reply is not JSON of the expected shape or holds
    fewer than three non-blank topics.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Topic draw reply is not JSON: %s", exc)
        return None
    topics = payload.get("topics") if isinstance(payload, dict) else None
    if not isinstance(topics, list):
        logger.warning("Topic draw reply has no topics list")
        return None
    cleaned = [t.strip() for t in topics if isinstance(t, str) and t.strip()]
    if len(cleaned) < 3:
        logger.warning("Topic draw reply has %d usable topics, need 3", len(cleaned))
        return None
    return cleaned[:3]
