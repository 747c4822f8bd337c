"""Click CLI: loads config, picks a provider, and plays matches in the terminal."""

import asyncio
import logging
import sys
import threading
from collections.abc import Awaitable
from typing import TextIO, TypeVar

import click
from dotenv import load_dotenv
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, ProviderConfig, load_config
from haiku_arena.engine import BattleEngine
from haiku_arena.healthcheck import check_provider
from haiku_arena.models import Mode, Turn
from haiku_arena.orchestrator import Battling, MatchOrchestrator, Phase, PhaseError, TopicDraw, TopicEntry
from haiku_arena.output import (
    console,
    print_battle_header,
    print_cups,
    print_draft_status,
    print_persona_table,
    print_reveal,
    print_submission,
    print_verdict,
    print_welcome,
)
from haiku_arena.providers.anthropic import AnthropicProvider
from haiku_arena.providers.base import AIProvider, ProviderError
from haiku_arena.providers.gemini import GeminiProvider
from haiku_arena.providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}

FORFEIT_COMMAND = "/forfeit"

MODE_CHOICES: dict[str, Mode] = {"1": Mode.FREE_FLOW, "2": Mode.KAMIKAZE}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _select_provider_name(config: AppConfig, requested: str | None) -> str | None:
    """Requested provider if it has a key, else the default, else any available one."""
    if requested:
        return requested if requested in config.available_providers else None
    if config.defaults.provider in config.available_providers:
        return config.defaults.provider
    return next(iter(sorted(config.available_providers)), None)


def _build_provider(provider_config: ProviderConfig) -> AIProvider:
    provider_class = PROVIDER_CLASSES.get(provider_config.sdk)
    if provider_class is None:
        raise ProviderError(provider_config.name, f"Unknown sdk '{provider_config.sdk}'")
    return provider_class(provider_config)


def _parse_choice(answer: str, count: int) -> int | None:
    """Parse a 1-based menu answer into a 0-based index, or None if invalid."""
    try:
        index = int(answer.strip()) - 1
    except ValueError:
        return None
    return index if 0 <= index < count else None


class _LineReader:
    """Reads stdin lines on a daemon thread, keeping at most one read in flight.

    A read still pending when a round times out is not lost to the next
    prompt: after ``discard_pending``, that line is dropped if it arrives
    before the next ``read`` starts, and kept if it answers the new prompt.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._pending: asyncio.Future[tuple[str, float]] | None = None
        self._discard = False

    def _future(self) -> asyncio.Future[tuple[str, float]]:
        if self._pending is None:
            loop = asyncio.get_running_loop()
            future: asyncio.Future[tuple[str, float]] = loop.create_future()
            stream = sys.stdin if self._stream is None else self._stream

            def _resolve(line: str) -> None:
                if not future.done():
                    future.set_result((line, loop.time()))

            def _read() -> None:
                line = stream.readline()
                try:
                    loop.call_soon_threadsafe(_resolve, line)
                except RuntimeError:
                    pass  # loop already closed

            threading.Thread(target=_read, name="stdin-reader", daemon=True).start()
            self._pending = future
        return self._pending

    def discard_pending(self) -> None:
        self._discard = self._pending is not None

    async def read(self, interrupt: asyncio.Event | None = None) -> str | None:
        """Next line without its newline; None if ``interrupt`` is set first.

        Raises click.Abort at end of input.
        """
        started = asyncio.get_running_loop().time()
        while True:
            future = self._future()
            if interrupt is not None:
                waiter = asyncio.ensure_future(interrupt.wait())
                try:
                    await asyncio.wait({future, waiter}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    waiter.cancel()
                if not future.done():
                    return None
            line, arrived_at = await future
            self._pending = None
            stale = self._discard and arrived_at < started
            self._discard = False
            if not line:
                raise click.Abort()
            if stale:
                logger.debug("Dropped line typed before the round timed out")
                continue
            return line.rstrip("\r\n")


async def _with_spinner(description: str, awaitable: Awaitable[T]) -> T:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(description, total=None)
        return await awaitable


async def _ask(reader: _LineReader, prompt: str) -> str:
    console.print(prompt, end="")
    line = await reader.read()
    if line is None:
        raise RuntimeError("Uninterrupted read returned no line")
    return line


async def _ask_choice(reader: _LineReader, prompt: str, count: int) -> int:
    while True:
        index = _parse_choice(await _ask(reader, f"{prompt} [1-{count}]: "), count)
        if index is not None:
            return index
        console.print(f"[yellow]Pick a number from 1 to {count}.[/yellow]")


def _show_new_rounds(engine: BattleEngine, opponent_name: str, shown: int) -> int:
    transcript = engine.transcript
    for i in range(shown, transcript.rounds_played):
        print_submission("You", transcript.human[i], is_opponent=False)
        print_submission(opponent_name, transcript.opponent[i], is_opponent=True)
    return transcript.rounds_played


async def _human_turn(engine: BattleEngine, reader: _LineReader, engine_changed: asyncio.Event) -> None:
    """Collect three lines for the current round, or until the timer forfeits it."""
    round_number = engine.round_number
    opponent_name = engine.config.persona.name
    print_battle_header(engine.config, round_number)
    console.print(f"[dim]Write three lines (5-7-5). Type {FORFEIT_COMMAND} to give up the round.[/dim]")

    def still_my_turn() -> bool:
        return engine.turn is Turn.HUMAN and engine.round_number == round_number

    lines: list[str] = []
    while still_my_turn():
        print_draft_status(engine.syllable_counts, engine.remaining())
        engine_changed.clear()
        line = await reader.read(interrupt=engine_changed)
        if line is None or not still_my_turn():
            break
        if line.strip() == FORFEIT_COMMAND:
            await _with_spinner(f"{opponent_name} is thinking...", engine.forfeit())
            return
        if not lines and not line.strip():
            console.print("[yellow]A haiku cannot begin with silence.[/yellow]")
            continue
        lines.append(line)
        engine.update_draft("\n".join(lines))
        if len(lines) == 3:
            print_draft_status(engine.syllable_counts, engine.remaining())
            await _with_spinner(f"{opponent_name} is thinking...", engine.submit())
            return

    console.print("[bold red]Time's up! The round is forfeited.[/bold red]")
    reader.discard_pending()


async def _play_battle(orchestrator: MatchOrchestrator, reader: _LineReader, engine_changed: asyncio.Event) -> None:
    phase = orchestrator.phase
    if not isinstance(phase, Battling):
        raise PhaseError(f"Expected phase Battling, currently {type(phase).__name__}")
    engine = phase.engine
    opponent_name = phase.config.persona.name
    shown = 0
    while not engine.is_complete:
        if engine.is_generating:
            engine_changed.clear()
            await _with_spinner(f"{opponent_name} is thinking...", engine_changed.wait())
            continue
        shown = _show_new_rounds(engine, opponent_name, shown)
        await _human_turn(engine, reader, engine_changed)
    _show_new_rounds(engine, opponent_name, shown)


async def _choose_topic(orchestrator: MatchOrchestrator, reader: _LineReader) -> None:
    phase = orchestrator.phase
    if isinstance(phase, TopicEntry):
        console.print("\n[bold]Declare the Field of Battle[/bold]")
        while not orchestrator.enter_topic(await _ask(reader, "Topic (e.g. The ambition of a casino carpet): ")):
            console.print("[yellow]The topic cannot be empty.[/yellow]")
        return

    if not isinstance(phase, TopicDraw):
        raise PhaseError(f"Expected phase TopicEntry or TopicDraw, currently {type(phase).__name__}")
    print_cups(len(phase.candidates))
    while True:
        index = await _ask_choice(reader, "Cup", len(phase.candidates))
        if await _with_spinner("A sudden gust reveals a hidden path...", orchestrator.pick_topic(index)):
            return


async def _run_session(config: AppConfig, provider: AIProvider) -> None:
    engine_changed = asyncio.Event()
    reader = _LineReader()

    def on_phase_change(phase: Phase) -> None:
        if isinstance(phase, TopicDraw) and phase.chosen is not None:
            print_reveal(phase.chosen)

    orchestrator = MatchOrchestrator(
        provider,
        config,
        on_change=on_phase_change,
        on_engine_change=lambda _: engine_changed.set(),
    )

    while True:
        print_welcome()
        mode_answer = await _ask(reader, "Mode [1-2]: ")
        while mode_answer.strip() not in MODE_CHOICES:
            mode_answer = await _ask(reader, "Mode [1-2]: ")
        mode = MODE_CHOICES[mode_answer.strip()]
        orchestrator.choose_mode(mode)

        print_persona_table(orchestrator.catalog)
        keys = list(orchestrator.catalog)
        index = await _ask_choice(reader, "Opponent", len(keys))
        if mode is Mode.KAMIKAZE:
            await _with_spinner("Forging the threads of fate...", orchestrator.choose_opponent(keys[index]))
        else:
            await orchestrator.choose_opponent(keys[index])

        await _choose_topic(orchestrator, reader)

        while True:
            await _play_battle(orchestrator, reader, engine_changed)
            result = await _with_spinner("The Samurai contemplates the ink...", orchestrator.wait_for_result())
            print_verdict(result.verdict, result.offer_tie_break)
            if not result.offer_tie_break:
                break
            await _ask(reader, "Press Enter to begin sudden death... ")
            await _with_spinner("The air grows still... a new challenge appears.", orchestrator.begin_tie_break())

        answer = await _ask(reader, "Play again? [Y/n]: ")
        if answer.strip().lower() in ("n", "no"):
            return
        orchestrator.play_again()


def _check_provider_or_confirm(provider: AIProvider) -> None:
    """Ping the provider; on failure ask whether to play on fallback text."""
    console.print(f"\n[bold]Checking {provider.name()} ({provider.model_string()})...[/bold]")
    ok, err = asyncio.run(check_provider(provider))
    if ok:
        console.print(f"  [green]OK  [/green] {provider.name()}\n")
        return
    short_err = err.splitlines()[0][:120] if err else "unknown error"
    console.print(f"  [red]FAIL[/red] {provider.name()}: {escape(short_err)}")
    if not click.confirm("Play anyway? Opponent, judge and draws will use fallback text.", default=False):
        sys.exit(0)
    console.print()


@click.command()
@click.option("--provider", "provider_name", default=None,
              help="Provider from settings.yaml (default: from config, else any with an API key)")
@click.option("--round-seconds", default=None, type=float,
              help="Override the normal round timer (tie-break rounds keep their own)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def main(
    provider_name: str | None,
    round_seconds: float | None,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """Haiku Battle Arena -- duel a scripted AI persona in 5-7-5, judged by the Samurai.

    \b
    Examples:
      haiku-arena
      haiku-arena --provider claude
      haiku-arena --round-seconds 120 --skip-health-check
    """
    # Reconfigure stdout/stderr to UTF-8 on Windows so generated haikus containing
    # Unicode chars don't crash the ANSI render path.
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    if round_seconds is not None:
        if round_seconds <= 0:
            console.print("[bold red]Error:[/bold red] --round-seconds must be positive.")
            sys.exit(1)
        config.timing.round_sec = round_seconds

    selected = _select_provider_name(config, provider_name)
    if selected is None:
        console.print("[bold red]Error:[/bold red] No provider available. Check API keys in .env or --provider.")
        sys.exit(1)

    try:
        provider = _build_provider(config.providers[selected])
    except ProviderError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    if not skip_health_check:
        _check_provider_or_confirm(provider)

    asyncio.run(_run_session(config, provider))


if __name__ == "__main__":
    main()
