"""CLI utilities."""

import os
from pathlib import Path

import click

from pathsense.config.loader import load_config
from pathsense.config.models import PathSenseConfig
from pathsense.core.errors import ConfigError
from pathsense.core.progress import spinner
from pathsense.indexing.pipeline import FileEntry
from pathsense.lifecycle import LifecycleState, LifecycleStatus
from pathsense.service import SemanticSearch


def get_data_dir(ctx: click.Context) -> Path | None:
    obj = ctx.find_root().obj or {}
    data_dir: Path | None = obj.get("data_dir")
    return data_dir


def load_cli_config(data_dir: Path | None) -> PathSenseConfig:
    """Load config, turning config errors into a clean CLI failure."""
    try:
        return load_config(data_dir)
    except ConfigError as e:
        raise click.ClickException(e.message) from e


def collect_files(root: Path) -> list[FileEntry]:
    """Walk *root* and return every non-hidden file, sorted by path.

    Hidden directories are not descended into.

    Args:
        root: Directory (or single file) to collect

    Returns:
        One FileEntry per file, with absolute paths
    """
    root = root.resolve()
    if root.is_file():
        return [FileEntry(path=str(root), name=root.name)]

    entries: list[FileEntry] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for filename in sorted(filenames):
            if filename.startswith("."):
                continue
            entries.append(FileEntry(path=os.path.join(dirpath, filename), name=filename))
    return entries


async def ensure_ready(engine: SemanticSearch) -> None:
    """Load the model behind a spinner.

    Raises:
        click.ClickException: If the model is disabled or failed to load
    """
    if engine.status is LifecycleStatus.DISABLED:
        raise click.ClickException(
            "Semantic search is disabled (model.enabled: false in config)"
        )

    with spinner("Loading model") as update:

        def on_state(state: LifecycleState) -> None:
            if state.status is LifecycleStatus.LOADING and state.message:
                update(state.message)

        unsubscribe = engine.subscribe(on_state)
        try:
            await engine.initialize()
        finally:
            unsubscribe()

    if not engine.is_ready:
        raise click.ClickException(engine.status_message or "Model failed to load")
