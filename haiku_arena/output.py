"""Rich console rendering for each phase of a match."""

from collections.abc import Mapping

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from haiku_arena.models import MatchConfig, Persona, Submission, SubmissionKind
from haiku_arena.syllables import HAIKU_PATTERN, line_status

console = Console(legacy_windows=False)

_STATUS_STYLES = {"over": "bold red", "correct": "bold green", "under": "white"}


def print_welcome() -> None:
    console.print(Rule("[bold cyan]Haiku Battle Arena[/bold cyan]"))
    console.print(
        "Welcome, challenger! Here, words are swords. "
        "Do you have the soul of a poet or the heart of a warrior? Choose your path:\n"
    )
    console.print("  [bold]1[/bold]  Free Flow  [dim]Forge your own saga. You choose the opponent, you choose the topic.[/dim]")
    console.print("  [bold]2[/bold]  Kamikaze   [dim]Face the winds of fate! A random, high-pressure topic will be thrust upon you.[/dim]")


def print_persona_table(personas: Mapping[str, Persona]) -> None:
    table = Table(title="Choose Your Opponent", show_lines=True)
    table.add_column("#", style="bold")
    table.add_column("Opponent", style="bold cyan")
    table.add_column("Difficulty")
    table.add_column("Description")
    for i, persona in enumerate(personas.values(), start=1):
        table.add_row(str(i), persona.name, persona.difficulty, persona.description)
    console.print(table)


def print_cups(count: int) -> None:
    console.print(Rule("[bold]Choose Your Destiny[/bold]"))
    console.print("A hidden topic lies beneath each cup. Select one to begin.")
    console.print("   ".join(f"[bold yellow]({i})[/bold yellow] ?" for i in range(1, count + 1)))


def print_reveal(topic: str) -> None:
    console.print(f"\n[bold green]Your Path is Chosen![/bold green] Your topic is: [bold]{escape(topic)}[/bold]")


def print_battle_header(config: MatchConfig, round_number: int) -> None:
    title = "Sudden Death!" if config.is_tie_break else f"Round {round_number} of {config.total_rounds}"
    console.print(Rule(f"[bold cyan]{title}[/bold cyan]"))
    console.print(f"[bold]Topic:[/bold] {escape(config.topic)}")
    if config.twist:
        console.print(f"[bold magenta]Twist:[/bold magenta] {escape(config.twist)}")


def syllable_counter(counts: tuple[int, int, int]) -> Text:
    """Render '5 / 7 / 5' style counts, coloured against the haiku pattern."""
    text = Text()
    for i, (count, target) in enumerate(zip(counts, HAIKU_PATTERN)):
        if i:
            text.append(" / ", style="dim")
        text.append(str(count), style=_STATUS_STYLES[line_status(count, target)])
    return text


def print_draft_status(counts: tuple[int, int, int], remaining: int) -> None:
    line = Text("Syllables: ")
    line.append_text(syllable_counter(counts))
    line.append(f"   {remaining}s left", style="yellow" if remaining > 10 else "bold red")
    console.print(line)


def print_submission(author: str, submission: Submission, *, is_opponent: bool) -> None:
    style = "dim" if submission.kind in (SubmissionKind.FORFEITED, SubmissionKind.FALLBACK) else ""
    console.print(
        Panel(
            Text(submission.text, style=style),
            title=f"[bold]{author}[/bold]",
            title_align="right" if is_opponent else "left",
            border_style="magenta" if is_opponent else "cyan",
            expand=False,
        )
    )


def print_verdict(verdict: str, offer_tie_break: bool) -> None:
    console.print(Rule("[bold green]The Samurai's Judgment[/bold green]"))
    console.print(Markdown(verdict))
    if offer_tie_break:
        console.print("\n[bold yellow]The battle is a draw. Only sudden death can settle it.[/bold yellow]")
