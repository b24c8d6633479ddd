"""Interactive CLI application."""
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from recall_engine.config import (
    DEFAULT_DB_PATH, DEFAULT_SESSION_LIMIT, SETTING_MASTERED_INTERVAL,
    SETTING_MASTERED_REPETITIONS, SETTING_SESSION_LIMIT,
)
from recall_engine.dashboard import estimate_study_time
from recall_engine.db import SQLiteStore
from recall_engine.engine import get_deck_stats, get_due_queue, rate, reveal, start_session
from recall_engine.errors import EngineError, PersistenceFailure
from recall_engine.log import configure_logging
from recall_engine.session import ReviewSession
from recall_engine.sm2 import quality_label

console = Console()

EXIT_WORDS = ("q", "quit", "menu")
QUALITY_CHOICES = ["0", "1", "2", "3", "4", "5"]


class SessionExitRequested(Exception):
    """Learner asked to leave the current session."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list) -> int:
    while True:
        answer = session_prompt(prompt).strip()
        if answer in choices:
            return int(answer)
        console.print(f"[red]Please enter one of: {', '.join(choices)}[/red]")


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("decks", "List decks"),
        ("new-deck", "Create a deck"),
        ("add", "Add a card to a deck"),
        ("study", "Review due cards"),
        ("stats", "Deck statistics"),
        ("settings", "Tune mastery thresholds and session size"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def choose_deck(store: SQLiteStore):
    decks = store.list_decks()
    if not decks:
        console.print("[yellow]No decks yet. Use 'new-deck' first.[/yellow]")
        return None
    for d in decks:
        console.print(f"  [cyan]{d['id']}[/cyan]) {d['title']} [dim]({d['card_count']} cards)[/dim]")
    return int(Prompt.ask("Select deck", choices=[str(d["id"]) for d in decks]))


def run_review_session(session: ReviewSession) -> None:
    """Drive a started session until it completes or the learner leaves."""
    if session.current is None:
        console.print("[yellow]No flashcards due right now![/yellow]")
        return
    console.print(f"\n[bold]{session.deck_title or 'Review'}[/bold] ({session.total} cards)\n")
    try:
        while session.current is not None:
            card = session.current
            console.print(Panel(card.front, title=f"Card {card.position}/{card.total}", border_style="cyan"))
            answer = session_prompt("[dim]Enter to reveal, 'h' for a hint[/dim]", default="")
            if answer.strip().lower() == "h" and card.has_hint:
                console.print(f"[dim]Hint: {session.hint()}[/dim]")
                session_prompt("[dim]Press Enter to reveal answer[/dim]", default="")
            back, _ = reveal(session)
            console.print(Panel(back, border_style="green"))
            while True:
                quality = session_int_prompt(
                    "Rate yourself (0=blackout, 3=hard, 4=good, 5=perfect)", choices=QUALITY_CHOICES,
                )
                try:
                    result = rate(session, quality)
                    break
                except PersistenceFailure as e:
                    console.print(f"[red]{e}. Rating not saved, try again.[/red]")
            console.print(f"[dim]{quality_label(quality)}: next review in {result.schedule.interval} day(s)[/dim]\n")
    except SessionExitRequested:
        session.abandon()
        console.print("[dim]Session ended early.[/dim]")
    show_session_summary(session)


def show_session_summary(session: ReviewSession) -> None:
    stats = session.stats
    console.print(
        f"[bold]Reviewed {stats.reviewed}/{stats.total}[/bold]  |  "
        f"[green]Correct: {stats.correct}[/green]  |  "
        f"[red]Incorrect: {stats.incorrect}[/red]  |  "
        f"Avg quality: [bold]{stats.average_quality:.2f}[/bold]"
    )


def cmd_decks(store: SQLiteStore):
    decks = store.list_decks()
    table = Table(title="Decks")
    table.add_column("Id", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Cards", justify="right")
    for d in decks:
        table.add_row(str(d["id"]), d["title"], str(d["card_count"]))
    console.print(table)


def cmd_new_deck(store: SQLiteStore):
    title = Prompt.ask("Deck title").strip()
    if not title:
        console.print("[red]Title cannot be empty.[/red]")
        return
    deck_id = store.add_deck(title)
    console.print(f"[green]Created deck {deck_id}: {title}[/green]")


def cmd_add(store: SQLiteStore):
    deck_id = choose_deck(store)
    if deck_id is None:
        return
    front = Prompt.ask("Front").strip()
    back = Prompt.ask("Back").strip()
    hint = Prompt.ask("Hint (optional)", default="").strip() or None
    if not front or not back:
        console.print("[red]Front and back are required.[/red]")
        return
    card = store.add_card(deck_id, front, back, hint)
    console.print(f"[green]Added card {card.id}[/green]")


def cmd_study(store: SQLiteStore):
    deck_id = choose_deck(store)
    if deck_id is None:
        return
    limit = int(store.get_setting(SETTING_SESSION_LIMIT, str(DEFAULT_SESSION_LIMIT)))
    queue = get_due_queue(store, deck_id, limit=limit)
    if queue:
        console.print(f"[dim]About {estimate_study_time(len(queue))}[/dim]")
    session = start_session(store, queue, deck_title=store.get_deck_title(deck_id) or "")
    run_review_session(session)


def cmd_stats(store: SQLiteStore):
    deck_id = choose_deck(store)
    if deck_id is None:
        return
    stats = get_deck_stats(store, deck_id)
    table = Table(title=store.get_deck_title(deck_id))
    table.add_column("Total", justify="right")
    table.add_column("Due", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Learning", justify="right")
    table.add_column("Mastered", justify="right")
    table.add_column("Avg ease", justify="right")
    table.add_row(
        str(stats.total), f"[yellow]{stats.due}[/yellow]", str(stats.new),
        str(stats.learning), f"[green]{stats.mastered}[/green]", f"{stats.average_ease_factor:.2f}",
    )
    console.print(table)


def cmd_settings(store: SQLiteStore):
    for key in (SETTING_MASTERED_REPETITIONS, SETTING_MASTERED_INTERVAL, SETTING_SESSION_LIMIT):
        current = store.get_setting(key, "")
        value = Prompt.ask(key, default=current).strip()
        if not value:
            continue
        if not value.isdigit():
            console.print(f"[red]{key} must be a whole number.[/red]")
            continue
        store.set_setting(key, value)
    console.print("[green]Settings saved.[/green]")


def main():
    configure_logging()
    store = SQLiteStore(DEFAULT_DB_PATH)
    console.print(Panel("[bold]Recall[/bold]\n[dim]Spaced repetition review[/dim]",
                        title="Welcome", border_style="blue"))

    commands = {
        "decks": cmd_decks,
        "new-deck": cmd_new_deck,
        "add": cmd_add,
        "study": cmd_study,
        "stats": cmd_stats,
        "settings": cmd_settings,
    }
    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="study").strip().lower()
        try:
            if choice in commands:
                commands[choice](store)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you next review![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except EngineError as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
