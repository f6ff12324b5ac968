"""pathsense clear command - remove every stored embedding."""

from pathlib import Path

import click
import questionary
from rich.console import Console

from pathsense.cli.utils import get_data_dir, load_cli_config
from pathsense.config.loader import get_store_path
from pathsense.store.embeddings import EmbeddingStore


def clear_store(store_path: Path, *, yes: bool = False) -> bool:
    """Delete all records from the store at *store_path*.

    Returns True if cleared, False if cancelled or nothing to clear.
    """
    console = Console(stderr=True)

    if not store_path.exists():
        console.print("[yellow]Nothing to clear[/yellow] - no embedding store found")
        return False

    with EmbeddingStore(store_path) as store:
        count = store.count()
        if count == 0:
            console.print("[yellow]Nothing to clear[/yellow] - the store is empty")
            return False

        console.print(f"\n[bold]{count} stored embeddings will be deleted from:[/bold]\n")
        console.print(f"  [cyan]•[/cyan] {store_path}\n")

        if not yes:
            answer = questionary.select(
                "This action cannot be undone. Are you sure?",
                choices=[
                    questionary.Choice("No, keep my embeddings", value=False),
                    questionary.Choice("Yes, delete everything", value=True),
                ],
                style=questionary.Style(
                    [
                        ("question", "bold"),
                        ("highlighted", "fg:red bold"),
                        ("selected", "fg:red"),
                    ]
                ),
            ).ask()

            if not answer:
                console.print("[dim]Cancelled[/dim]")
                return False

        deleted = store.clear()

    console.print(f"[green]✓[/green] Removed {deleted} embeddings")
    return True


@click.command()
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def clear_command(ctx: click.Context, yes: bool) -> None:
    """Remove every stored embedding.

    The model cache and config are left alone.
    """
    data_dir = get_data_dir(ctx)
    config = load_cli_config(data_dir)
    clear_store(get_store_path(config, data_dir), yes=yes)
