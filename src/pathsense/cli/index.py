"""pathsense index command - embed file names and paths under a directory."""

import asyncio
import json
import time
from pathlib import Path

import click

from pathsense.cli.utils import collect_files, ensure_ready, get_data_dir, load_cli_config
from pathsense.core.progress import pluralize, progress_bar, status
from pathsense.indexing.pipeline import FileEntry, IndexingReport
from pathsense.lifecycle import LifecycleState
from pathsense.service import SemanticSearch


async def run_index(
    engine: SemanticSearch,
    files: list[FileEntry],
    *,
    missing_only: bool = False,
) -> IndexingReport:
    """Initialize the model and index *files* with a progress bar."""
    await ensure_ready(engine)

    with progress_bar("Embedding", total=len(files)) as update:

        def on_state(state: LifecycleState) -> None:
            if state.progress is not None:
                update(state.progress.current, state.progress.total)

        unsubscribe = engine.subscribe(on_state)
        try:
            if missing_only:
                return await engine.index_missing(files)
            return await engine.index_files(files)
        finally:
            unsubscribe()


@click.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option("--missing", "missing_only", is_flag=True, help="Only index files without a stored embedding")
@click.option("--json", "as_json", is_flag=True, help="Output the report as JSON")
@click.pass_context
def index_command(ctx: click.Context, path: Path, missing_only: bool, as_json: bool) -> None:
    """Index the names and paths of every file under PATH.

    Hidden files and directories are skipped. File contents are never read.
    """
    data_dir = get_data_dir(ctx)
    config = load_cli_config(data_dir)
    files = collect_files(path)

    if not files:
        if as_json:
            click.echo(json.dumps(IndexingReport().to_dict()))
        else:
            status(f"No files found under {path}", style="warning")
        return

    start_time = time.time()
    engine = SemanticSearch.from_config(data_dir, config).open()
    try:
        report = asyncio.run(run_index(engine, files, missing_only=missing_only))
    finally:
        engine.close()
    elapsed = time.time() - start_time

    if as_json:
        click.echo(json.dumps(report.to_dict()))
        return

    status(f"{pluralize(report.indexed, 'file')} indexed ({elapsed:.1f}s)", style="success")
    if report.failed:
        status(
            f"{pluralize(report.failed, 'file')} failed in "
            f"{pluralize(len(report.failed_batches), 'batch', 'batches')}; run with -v for details",
            style="warning",
        )
