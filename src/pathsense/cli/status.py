"""pathsense status command - show embedding store contents."""

import json

import click

from pathsense.cli.utils import get_data_dir, load_cli_config
from pathsense.config.loader import get_store_path, resolve_data_dir
from pathsense.store.embeddings import EmbeddingStore


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def status_command(ctx: click.Context, as_json: bool) -> None:
    """Show what is indexed and which model is configured.

    Does not start the model.
    """
    data_dir = get_data_dir(ctx)
    config = load_cli_config(data_dir)
    store_path = get_store_path(config, data_dir)

    base = {
        "data_dir": str(resolve_data_dir(data_dir)),
        "enabled": config.model.enabled,
        "model": config.model.name,
    }

    if not store_path.exists():
        if as_json:
            click.echo(json.dumps({**base, "indexed": 0, "store": None}))
        else:
            click.echo(f"Model: {config.model.name}{'' if config.model.enabled else ' (disabled)'}")
            click.echo("Store: not created yet. Run 'pathsense index PATH' first.")
        return

    with EmbeddingStore(store_path) as store:
        stats = store.stats()

    if as_json:
        click.echo(
            json.dumps(
                {
                    **base,
                    "indexed": stats.count,
                    "store": stats.path,
                    "models": stats.models,
                }
            )
        )
        return

    click.echo(f"Model: {config.model.name}{'' if config.model.enabled else ' (disabled)'}")
    click.echo(f"Store: {stats.path}")
    click.echo(f"Indexed: {stats.count} paths")
    for model, count in sorted(stats.models.items()):
        click.echo(f"  {model}: {count}")
