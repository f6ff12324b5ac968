"""pathsense search command - rank indexed paths against a query."""

import asyncio
import json

import click
from rich.console import Console
from rich.table import Table

from pathsense.cli.utils import ensure_ready, get_data_dir, load_cli_config
from pathsense.config.constants import SEARCH_MAX_TOP_K
from pathsense.core.errors import PathSenseError
from pathsense.core.progress import status
from pathsense.search.vectors import SearchResult
from pathsense.service import SemanticSearch


async def run_search(
    engine: SemanticSearch,
    query: str,
    *,
    scope: str | None = None,
    top_k: int | None = None,
) -> list[SearchResult]:
    if not query.strip():
        return []
    # Nothing indexed: answer without paying for a model load
    if engine.store.count() == 0:
        return []
    await ensure_ready(engine)
    return await engine.search(query, scope=scope, top_k=top_k)


def _make_results_table(results: list[SearchResult]) -> Table:
    table = Table(show_header=True, box=None, padding=(0, 1), pad_edge=False)
    table.add_column("score", style="cyan", justify="right", width=6)
    table.add_column("path", style="white")
    for result in results:
        table.add_row(f"{result.score:.3f}", result.path)
    return table


@click.command()
@click.argument("query")
@click.option("--scope", default=None, help="Only match paths starting with this prefix")
@click.option(
    "--top-k",
    "-k",
    type=click.IntRange(1, SEARCH_MAX_TOP_K),
    default=None,
    help="Number of results (default: search.top_k from config)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def search_command(
    ctx: click.Context,
    query: str,
    scope: str | None,
    top_k: int | None,
    as_json: bool,
) -> None:
    """Find indexed files whose name or path matches QUERY in meaning."""
    data_dir = get_data_dir(ctx)
    config = load_cli_config(data_dir)

    engine = SemanticSearch.from_config(data_dir, config).open()
    try:
        results = asyncio.run(run_search(engine, query, scope=scope, top_k=top_k))
    except PathSenseError as e:
        raise click.ClickException(e.message) from e
    finally:
        engine.close()

    if as_json:
        click.echo(json.dumps({"query": query, "results": [r.to_dict() for r in results]}))
        return

    if not results:
        status("No results", style="warning")
        return
    Console().print(_make_results_table(results))
