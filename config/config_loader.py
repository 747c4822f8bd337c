"""Load settings.yaml into typed dataclasses. Validates API keys and personas at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import yaml

from haiku_arena.models import Persona

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ProviderConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class TimingConfig:
    round_sec: float = 60
    tie_break_round_sec: float = 45
    reveal_delay_sec: float = 2

    def round_duration(self, is_tie_break: bool) -> float:
        return self.tie_break_round_sec if is_tie_break else self.round_sec


@dataclass
class PromptsConfig:
    opponent: str
    topics: str
    twist: str
    tie_break_topic: str
    judge_free_flow: str
    judge_kamikaze: str
    judge_tie_break: str


@dataclass
class FallbacksConfig:
    opponent_haiku: str
    forfeit: str
    topics: list[str]
    twist: str
    tie_break_topic: str
    verdict: str


@dataclass
class DefaultsConfig:
    provider: str


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    timing: TimingConfig
    providers: dict[str, ProviderConfig]
    prompts: PromptsConfig
    fallbacks: FallbacksConfig
    personas: Mapping[str, Persona] = field(default_factory=lambda: MappingProxyType({}))
    available_providers: set[str] = field(default_factory=set)


def _load_personas(personas_raw: dict) -> Mapping[str, Persona]:
    """Build the read-only persona catalog, keyed by persona id.

    Raises ValueError if a temperature falls outside (0, 1] or names collide.
    """
    personas: dict[str, Persona] = {}
    seen_names: set[str] = set()
    for key, raw in personas_raw.items():
        temperature = float(raw["temperature"])
        if not 0 < temperature <= 1:
            raise ValueError(f"Persona '{key}' temperature must be in (0, 1], got {temperature}")
        name = str(raw["name"])
        if name in seen_names:
            raise ValueError(f"Duplicate persona name: {name}")
        seen_names.add(name)
        personas[str(key)] = Persona(
            name=name,
            difficulty=str(raw["difficulty"]),
            temperature=temperature,
            description=str(raw["description"]).strip(),
            instruction=str(raw["instruction"]).strip(),
        )
    return MappingProxyType(personas)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs missing API keys but does not raise — callers check
    available_providers and the game still runs on fallbacks.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults = DefaultsConfig(provider=str(raw["defaults"]["provider"]))

    timing_raw = raw.get("timing", {})
    timing = TimingConfig(
        round_sec=float(timing_raw.get("round_sec", 60)),
        tie_break_round_sec=float(timing_raw.get("tie_break_round_sec", 45)),
        reveal_delay_sec=float(timing_raw.get("reveal_delay_sec", 2)),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        opponent=prompts_raw["opponent"],
        topics=prompts_raw["topics"],
        twist=prompts_raw["twist"],
        tie_break_topic=prompts_raw["tie_break_topic"],
        judge_free_flow=prompts_raw["judge_free_flow"],
        judge_kamikaze=prompts_raw["judge_kamikaze"],
        judge_tie_break=prompts_raw["judge_tie_break"],
    )

    fallbacks_raw = raw["fallbacks"]
    fallbacks = FallbacksConfig(
        opponent_haiku=fallbacks_raw["opponent_haiku"],
        forfeit=fallbacks_raw["forfeit"],
        topics=[str(t) for t in fallbacks_raw["topics"]],
        twist=fallbacks_raw["twist"],
        tie_break_topic=fallbacks_raw["tie_break_topic"],
        verdict=fallbacks_raw["verdict"],
    )
    if len(fallbacks.topics) != 3:
        raise ValueError(f"fallbacks.topics must list exactly 3 topics, got {len(fallbacks.topics)}")

    personas = _load_personas(raw.get("personas", {}))

    providers: dict[str, ProviderConfig] = {}
    available_providers: set[str] = set()

    for provider_name, provider_raw in raw["providers"].items():
        provider_cfg = ProviderConfig(
            name=provider_name,
            sdk=provider_raw["sdk"],
            model=provider_raw["model"],
            api_key_env=provider_raw["api_key_env"],
            timeout_sec=int(provider_raw["timeout_sec"]),
            max_tokens=int(provider_raw["max_tokens"]),
            base_url=provider_raw.get("base_url"),
        )
        providers[provider_name] = provider_cfg

        api_key = os.environ.get(provider_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s — set %s in .env",
                provider_name,
                provider_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        timing=timing,
        providers=providers,
        prompts=prompts,
        fallbacks=fallbacks,
        personas=personas,
        available_providers=available_providers,
    )
