"""User-facing progress feedback for CLI operations.

Design principles:
- Single line updates, no spam
- Graceful degradation in non-TTY (CI, pipes)
- Suppress structlog console output while a Rich live display is active

Usage::

    from pathsense.core.progress import progress_bar, spinner, status

    status("Ready", style="success")  # ✓ Ready

    with progress_bar("Embedding", total=250) as update:
        update(10, 250)

    with spinner("Loading model"):
        await lifecycle.initialize()
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

_console = Console(stderr=True)

_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}

_suppress_console_logs = threading.local()


def is_console_suppressed() -> bool:
    """Check if console logging is currently suppressed."""
    return getattr(_suppress_console_logs, "active", False)


@contextmanager
def suppress_console_logs() -> Iterator[None]:
    """Suppress structlog console output; file handlers still receive logs."""
    _suppress_console_logs.active = True
    try:
        yield
    finally:
        _suppress_console_logs.active = False


def _get_logger() -> BoundLogger:
    """Get logger lazily to respect runtime config."""
    from pathsense.core.logging import get_logger

    return get_logger("progress")


def _is_tty() -> bool:
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def get_console() -> Console:
    """Get the shared Rich console instance."""
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print a styled status message to stderr."""
    prefix = _STYLES.get(style, "")
    padding = " " * indent
    _console.print(f"{padding}{prefix}{message}", highlight=False)
    _get_logger().debug("status", message=message, style=style)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Return e.g. "1 file" or "3 files"."""
    if plural is None:
        plural = singular + "s"
    word = singular if count == 1 else plural
    return f"{count} {word}"


@contextmanager
def progress_bar(
    desc: str,
    *,
    total: int,
    unit: str = "files",
) -> Iterator[Callable[[int, int], None]]:
    """Yield an ``update(current, total)`` callback driving a progress bar.

    Outside a TTY the callback only logs at DEBUG level.
    """
    if not _is_tty():
        log = _get_logger()

        def _log_update(current: int, total_: int) -> None:
            log.debug("progress", desc=desc, current=current, total=total_)

        yield _log_update
        return

    with (
        suppress_console_logs(),
        Progress(
            TextColumn("    {task.description}:"),
            BarColumn(bar_width=25, style="cyan", complete_style="cyan"),
            TaskProgressColumn(),
            TextColumn("{task.completed}/{task.total} {task.fields[unit]}"),
            console=_console,
            transient=True,
        ) as pbar,
    ):
        task_id = pbar.add_task(desc, total=total, unit=unit)

        def _update(current: int, total_: int) -> None:
            pbar.update(task_id, completed=current, total=total_)

        yield _update


@contextmanager
def spinner(message: str, *, indent: int = 0) -> Iterator[Callable[[str], None]]:
    """Spinner with log suppression. Yields a callback that updates the text."""
    padding = " " * indent
    if _is_tty():
        with (
            suppress_console_logs(),
            _console.status(f"{padding}[cyan]{message}[/cyan]", spinner="dots") as live,
        ):
            yield lambda text: live.update(f"{padding}[cyan]{text}[/cyan]")
    else:
        _console.print(f"{padding}{message}...")
        yield lambda _text: None
