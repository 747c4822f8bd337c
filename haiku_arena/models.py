"""Pure dataclasses for the Haiku Arena match pipeline. No logic beyond derived fields, no deps."""

from dataclasses import dataclass
from enum import Enum


class Mode(str, Enum):
    FREE_FLOW = "Free Flow"
    KAMIKAZE = "Kamikaze"


class Turn(str, Enum):
    HUMAN = "human"
    OPPONENT = "opponent"


class SubmissionKind(str, Enum):
    AUTHORED = "authored"      # typed by the human
    FORFEITED = "forfeited"    # human ran out of time or gave up the round
    GENERATED = "generated"    # opponent reply from the backend
    FALLBACK = "fallback"      # opponent reply substituted after a backend failure


@dataclass(frozen=True)
class Persona:
    name: str
    difficulty: str        # "Easy", "Medium", "Hard"
    temperature: float     # sampling temperature in (0, 1]
    description: str       # flavor text for the selection screen
    instruction: str       # behavioral text sent to the backend


@dataclass(frozen=True)
class Submission:
    text: str
    kind: SubmissionKind

    @property
    def is_forfeit(self) -> bool:
        return self.kind is SubmissionKind.FORFEITED


@dataclass(frozen=True)
class Transcript:
    """Both participants' submissions; index = round number - 1."""

    human: tuple[Submission, ...] = ()
    opponent: tuple[Submission, ...] = ()

    @property
    def rounds_played(self) -> int:
        return len(self.opponent)

    @property
    def is_balanced(self) -> bool:
        return len(self.human) == len(self.opponent)


@dataclass(frozen=True)
class MatchConfig:
    mode: Mode
    persona: Persona
    topic: str
    twist: str | None = None
    is_tie_break: bool = False

    @property
    def total_rounds(self) -> int:
        return 1 if self.is_tie_break else 3


@dataclass
class ModelResponse:
    provider: str          # "gemini", "openai", "claude", "grok"
    model: str             # actual model string used
    content: str
    latency_sec: float
    token_count: int | None
    purpose: str = ""      # "opponent", "topics", "twist", "judge", ...
