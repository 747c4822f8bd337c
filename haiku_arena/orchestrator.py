"""Match orchestration: mode → opponent → topic → battle → judgment → replay or tie-break."""

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace

from config.config_loader import AppConfig
from haiku_arena.engine import BattleEngine, EnginePhase
from haiku_arena.generation import generate_or_fallback
from haiku_arena.judging import build_judge_prompt, verdict_is_draw
from haiku_arena.models import MatchConfig, Mode, Persona, Transcript
from haiku_arena.prompts import TOPICS_SCHEMA, parse_topics
from haiku_arena.providers.base import AIProvider

logger = logging.getLogger(__name__)


class PhaseError(RuntimeError):
    """Raised when an orchestrator operation is invoked in the wrong phase."""


@dataclass(frozen=True)
class Welcome:
    pass


@dataclass(frozen=True)
class ModeChosen:
    mode: Mode


@dataclass(frozen=True)
class TopicEntry:
    mode: Mode
    persona: Persona


@dataclass(frozen=True)
class TopicDraw:
    mode: Mode
    persona: Persona
    candidates: tuple[str, ...] = ()   # empty while the draw is in flight
    chosen: str | None = None          # set once a cup is picked, before the reveal delay ends


@dataclass(frozen=True)
class TwistDraw:
    persona: Persona
    topic: str


@dataclass(frozen=True)
class Battling:
    config: MatchConfig
    engine: BattleEngine


@dataclass(frozen=True)
class Judging:
    config: MatchConfig
    transcript: Transcript


@dataclass(frozen=True)
class Result:
    config: MatchConfig
    transcript: Transcript
    verdict: str
    offer_tie_break: bool


@dataclass(frozen=True)
class TieBreakTopicDraw:
    mode: Mode
    persona: Persona


Phase = (
    Welcome | ModeChosen | TopicEntry | TopicDraw | TwistDraw
    | Battling | Judging | Result | TieBreakTopicDraw
)


class MatchOrchestrator:
    """Top-level state machine for one play session.

    Each phase carries only the data valid in it, so match-scoped values
    (mode, opponent, topic, twist, verdict) disappear when the session
    returns to ``Welcome``. Backend failures are replaced by fallback values
    and never stop the flow.
    """

    def __init__(
        self,
        provider: AIProvider,
        config: AppConfig,
        on_change: Callable[[Phase], None] | None = None,
        on_engine_change: Callable[[EnginePhase], None] | None = None,
    ) -> None:
        self._provider = provider
        self._config = config
        self._on_change = on_change
        self._on_engine_change = on_engine_change
        self._phase: Phase = Welcome()
        self._judging_task: asyncio.Task | None = None

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def catalog(self) -> Mapping[str, Persona]:
        return self._config.personas

    # --- selection ------------------------------------------------------

    def choose_mode(self, mode: Mode) -> None:
        self._expect(Welcome)
        logger.info("Mode chosen: %s", mode.value)
        self._set_phase(ModeChosen(mode=mode))

    async def choose_opponent(self, persona_key: str) -> bool:
        """Select an opponent; Kamikaze continues straight into the topic draw.

        Returns False for an unknown persona key.
        """
        phase = self._expect(ModeChosen)
        persona = self.catalog.get(persona_key)
        if persona is None:
            logger.debug("Unknown persona: %s", persona_key)
            return False
        logger.info("Opponent chosen: %s", persona.name)

        if phase.mode is Mode.FREE_FLOW:
            self._set_phase(TopicEntry(mode=phase.mode, persona=persona))
            return True

        self._set_phase(TopicDraw(mode=phase.mode, persona=persona))
        candidates = await self._draw_topics()
        self._set_phase(TopicDraw(mode=phase.mode, persona=persona, candidates=tuple(candidates)))
        return True

    def enter_topic(self, topic: str) -> bool:
        """Commit a manually entered Free Flow topic and start the battle."""
        phase = self._expect(TopicEntry)
        topic = topic.strip()
        if not topic:
            return False
        self._start_battle(MatchConfig(mode=phase.mode, persona=phase.persona, topic=topic))
        return True

    async def pick_topic(self, index: int) -> bool:
        """Lift one of the concealed cups in a Kamikaze draw.

        Reveals the topic, waits out the reveal delay, draws the twist and
        starts the battle. Returns False if the cups are not ready, one has
        already been picked, or the index is out of range.
        """
        phase = self._expect(TopicDraw)
        if not phase.candidates or phase.chosen is not None:
            return False
        if not 0 <= index < len(phase.candidates):
            return False

        topic = phase.candidates[index]
        logger.info("Topic drawn: %s", topic)
        self._set_phase(replace(phase, chosen=topic))
        await asyncio.sleep(self._config.timing.reveal_delay_sec)

        self._set_phase(TwistDraw(persona=phase.persona, topic=topic))
        twist, _ = await generate_or_fallback(
            self._provider,
            self._config.prompts.twist,
            self._config.fallbacks.twist,
            purpose="twist",
        )
        logger.info("Twist drawn: %s", twist)
        self._start_battle(MatchConfig(mode=phase.mode, persona=phase.persona, topic=topic, twist=twist))
        return True

    # --- battle and judgment ----------------------------------------------

    async def wait_for_result(self) -> Result:
        """Wait for the live battle (if any) and its judgment to finish."""
        if isinstance(self._phase, Battling):
            await self._phase.engine.wait_complete()
        if isinstance(self._phase, Judging) and self._judging_task is not None:
            await self._judging_task
        return self._expect(Result)

    async def begin_tie_break(self) -> None:
        """Start a single sudden-death round against the same opponent."""
        phase = self._expect(Result)
        if not phase.offer_tie_break:
            raise PhaseError("Tie-break is only offered after a drawn match")
        persona = phase.config.persona
        mode = phase.config.mode
        self._set_phase(TieBreakTopicDraw(mode=mode, persona=persona))
        topic, _ = await generate_or_fallback(
            self._provider,
            self._config.prompts.tie_break_topic,
            self._config.fallbacks.tie_break_topic,
            purpose="tie_break_topic",
        )
        logger.info("Tie-break topic: %s", topic)
        self._start_battle(MatchConfig(mode=mode, persona=persona, topic=topic, is_tie_break=True))

    def play_again(self) -> None:
        """Discard every match-scoped value and return to the welcome screen."""
        phase = self._expect(Result)
        if phase.offer_tie_break:
            raise PhaseError("A drawn match must be settled by a tie-break")
        self._judging_task = None
        self._set_phase(Welcome())

    # --- internals ------------------------------------------------------

    def _expect(self, phase_type: type) -> Phase:
        if not isinstance(self._phase, phase_type):
            raise PhaseError(f"Expected phase {phase_type.__name__}, currently {type(self._phase).__name__}")
        return self._phase

    def _set_phase(self, phase: Phase) -> None:
        logger.debug("Phase: %s -> %s", type(self._phase).__name__, type(phase).__name__)
        self._phase = phase
        if self._on_change:
            self._on_change(phase)

    async def _draw_topics(self) -> list[str]:
        fallback_topics = self._config.fallbacks.topics
        text, used_fallback = await generate_or_fallback(
            self._provider,
            self._config.prompts.topics,
            json.dumps({"topics": fallback_topics}),
            purpose="topics",
            response_schema=TOPICS_SCHEMA,
        )
        if used_fallback:
            return list(fallback_topics)
        topics = parse_topics(text)
        if topics is None:
            logger.warning("Unusable topic draw, using fallback topics")
            return list(fallback_topics)
        return topics

    def _start_battle(self, match_config: MatchConfig) -> None:
        engine = BattleEngine(
            match_config,
            self._provider,
            self._config.prompts,
            self._config.fallbacks,
            self._config.timing,
            on_complete=self._on_battle_complete,
            on_change=self._on_engine_change,
        )
        engine.start()
        self._set_phase(Battling(config=match_config, engine=engine))

    def _on_battle_complete(self, transcript: Transcript, is_tie_break: bool) -> None:
        phase = self._expect(Battling)
        logger.info("Battle complete (tie-break=%s), judging", is_tie_break)
        self._set_phase(Judging(config=phase.config, transcript=transcript))
        self._judging_task = asyncio.ensure_future(self._judge(phase.config, transcript))

    async def _judge(self, match_config: MatchConfig, transcript: Transcript) -> None:
        prompt = build_judge_prompt(match_config, transcript, self._config.prompts)
        verdict, _ = await generate_or_fallback(
            self._provider,
            prompt,
            self._config.fallbacks.verdict,
            purpose="judge",
        )
        offer_tie_break = verdict_is_draw(verdict) and not match_config.is_tie_break
        logger.info("Verdict received (draw offered=%s)", offer_tie_break)
        self._set_phase(
            Result(
                config=match_config,
                transcript=transcript,
                verdict=verdict,
                offer_tie_break=offer_tie_break,
            )
        )
