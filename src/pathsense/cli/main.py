"""PathSense CLI - pathsense command."""

from pathlib import Path

import click

from pathsense.cli.clear import clear_command
from pathsense.cli.index import index_command
from pathsense.cli.search import search_command
from pathsense.cli.status import status_command
from pathsense.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="pathsense")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding config.yaml and the embedding store (default: ~/.pathsense)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, data_dir: Path | None) -> None:
    """PathSense - on-device semantic search over file names and paths."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["data_dir"] = data_dir
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(index_command, name="index")
cli.add_command(search_command, name="search")
cli.add_command(status_command, name="status")
cli.add_command(clear_command, name="clear")


if __name__ == "__main__":
    cli()
