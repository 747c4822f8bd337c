"""Battle round engine: one match of alternating human/opponent haikus."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from config.config_loader import FallbacksConfig, PromptsConfig, TimingConfig
from haiku_arena.generation import generate_or_fallback
from haiku_arena.models import MatchConfig, Submission, SubmissionKind, Transcript, Turn
from haiku_arena.prompts import build_opponent_prompt
from haiku_arena.providers.base import AIProvider
from haiku_arena.syllables import draft_counts
from haiku_arena.timer import RoundTimer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AwaitingHuman:
    round_number: int


@dataclass(frozen=True)
class GeneratingOpponentReply:
    round_number: int


@dataclass(frozen=True)
class Complete:
    transcript: Transcript


EnginePhase = AwaitingHuman | GeneratingOpponentReply | Complete


@dataclass
class RoundState:
    draft: str = ""
    syllable_counts: tuple[int, int, int] = (0, 0, 0)


class BattleEngine:
    """Runs a single match from round 1 to completion. Not reusable.

    The human moves first each round; submitting (or forfeiting, or letting
    the timer run out) hands the turn to the opponent, whose reply is fetched
    from the provider. Generation failures are replaced by a fallback haiku
    so the match always reaches ``Complete``.
    """

    def __init__(
        self,
        config: MatchConfig,
        provider: AIProvider,
        prompts: PromptsConfig,
        fallbacks: FallbacksConfig,
        timing: TimingConfig,
        on_complete: Callable[[Transcript, bool], None] | None = None,
        on_change: Callable[[EnginePhase], None] | None = None,
    ) -> None:
        self._config = config
        self._provider = provider
        self._prompts = prompts
        self._fallbacks = fallbacks
        self._round_sec = timing.round_duration(config.is_tie_break)
        self._on_complete = on_complete
        self._on_change = on_change

        self._timer = RoundTimer()
        self._human: list[Submission] = []
        self._opponent: list[Submission] = []
        self._phase: EnginePhase = AwaitingHuman(round_number=1)
        self._round: RoundState | None = RoundState()
        self._completed = asyncio.Event()
        self._pending: set[asyncio.Task] = set()
        self._started = False

    # --- read-only view -------------------------------------------------

    @property
    def config(self) -> MatchConfig:
        return self._config

    @property
    def phase(self) -> EnginePhase:
        return self._phase

    @property
    def total_rounds(self) -> int:
        return self._config.total_rounds

    @property
    def round_duration(self) -> float:
        return self._round_sec

    @property
    def round_number(self) -> int | None:
        if isinstance(self._phase, Complete):
            return None
        return self._phase.round_number

    @property
    def turn(self) -> Turn | None:
        if isinstance(self._phase, AwaitingHuman):
            return Turn.HUMAN
        if isinstance(self._phase, GeneratingOpponentReply):
            return Turn.OPPONENT
        return None

    @property
    def is_generating(self) -> bool:
        return isinstance(self._phase, GeneratingOpponentReply)

    @property
    def is_complete(self) -> bool:
        return isinstance(self._phase, Complete)

    @property
    def draft(self) -> str:
        return self._round.draft if self._round else ""

    @property
    def syllable_counts(self) -> tuple[int, int, int]:
        return self._round.syllable_counts if self._round else (0, 0, 0)

    @property
    def transcript(self) -> Transcript:
        """Snapshot of submissions so far."""
        return Transcript(human=tuple(self._human), opponent=tuple(self._opponent))

    def remaining(self) -> int:
        return self._timer.remaining()

    async def wait_complete(self) -> Transcript:
        await self._completed.wait()
        if not isinstance(self._phase, Complete):
            raise RuntimeError("BattleEngine signalled completion without a transcript")
        return self._phase.transcript

    # --- actions --------------------------------------------------------

    def start(self) -> None:
        """Arm the first round's timer. Must be called inside a running loop."""
        if self._started:
            raise RuntimeError("BattleEngine already started")
        self._started = True
        logger.info(
            "Match started: %s vs %s on %r (%d round(s))",
            self._config.mode.value, self._config.persona.name, self._config.topic, self.total_rounds,
        )
        self._arm_timer(1)
        self._notify()

    def update_draft(self, text: str) -> bool:
        if not isinstance(self._phase, AwaitingHuman) or self._round is None:
            return False
        self._round.draft = text
        self._round.syllable_counts = draft_counts(text)
        return True

    async def submit(self, text: str | None = None) -> bool:
        """Submit the human haiku (the current draft when ``text`` is None).

        Returns False, changing nothing, when it is not the human's turn or
        the text is blank.
        """
        if not isinstance(self._phase, AwaitingHuman):
            logger.debug("Submission rejected: not awaiting human (%s)", type(self._phase).__name__)
            return False
        text = (self.draft if text is None else text).strip()
        if not text:
            logger.debug("Submission rejected: empty haiku")
            return False
        round_number = self._accept_human(Submission(text, SubmissionKind.AUTHORED))
        await self._reply(round_number)
        return True

    async def forfeit(self) -> bool:
        """Give up the current round; records the forfeit placeholder."""
        if not isinstance(self._phase, AwaitingHuman):
            return False
        round_number = self._accept_human(self._forfeit_submission())
        await self._reply(round_number)
        return True

    # --- internals ------------------------------------------------------

    def _forfeit_submission(self) -> Submission:
        return Submission(self._fallbacks.forfeit, SubmissionKind.FORFEITED)

    def _arm_timer(self, round_number: int) -> None:
        self._timer.start(self._round_sec, lambda: self._on_timer_expired(round_number))

    def _on_timer_expired(self, round_number: int) -> None:
        if not isinstance(self._phase, AwaitingHuman) or self._phase.round_number != round_number:
            logger.debug("Stale expiry for round %d ignored", round_number)
            return
        logger.info("Round %d timed out, forfeiting", round_number)
        self._accept_human(self._forfeit_submission())
        task = asyncio.ensure_future(self._reply(round_number))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _accept_human(self, submission: Submission) -> int:
        """Record the human's turn and hand over to the opponent. Synchronous."""
        if not isinstance(self._phase, AwaitingHuman) or self._round is None:
            raise RuntimeError("Human turn accepted outside AwaitingHuman")
        round_number = self._phase.round_number
        self._timer.cancel()
        self._human.append(submission)
        self._round.draft = ""
        self._round.syllable_counts = (0, 0, 0)
        self._phase = GeneratingOpponentReply(round_number=round_number)
        logger.debug("Round %d: human %s", round_number, submission.kind.value)
        self._notify()
        return round_number

    async def _reply(self, round_number: int) -> None:
        prompt = build_opponent_prompt(self._config, self.transcript, self._prompts)
        text, used_fallback = await generate_or_fallback(
            self._provider,
            prompt,
            self._fallbacks.opponent_haiku,
            purpose="opponent",
            temperature=self._config.persona.temperature,
        )
        kind = SubmissionKind.FALLBACK if used_fallback else SubmissionKind.GENERATED
        self._opponent.append(Submission(text, kind))
        logger.debug("Round %d: opponent %s", round_number, kind.value)

        if round_number >= self.total_rounds:
            self._finish()
        else:
            self._phase = AwaitingHuman(round_number=round_number + 1)
            self._arm_timer(round_number + 1)
            self._notify()

    def _finish(self) -> None:
        self._timer.cancel()
        transcript = self.transcript
        self._phase = Complete(transcript=transcript)
        self._round = None
        self._completed.set()
        logger.info("Match complete after %d round(s)", transcript.rounds_played)
        self._notify()
        if self._on_complete:
            self._on_complete(transcript, self._config.is_tie_break)

    def _notify(self) -> None:
        if self._on_change:
            self._on_change(self._phase)
