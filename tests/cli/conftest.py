"""CLI fixtures: swap the process-backed compute context for the in-memory one."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest


@pytest.fixture
def fake_process_context(
    monkeypatch: pytest.MonkeyPatch,
    context_factory: Callable[[], Any],
    fake_contexts: list[Any],
) -> list[Any]:
    """Make every engine the CLI builds talk to an auto-responding fake."""
    monkeypatch.setattr(
        "pathsense.service.ProcessComputeContext",
        lambda *args, **kwargs: context_factory(),
    )
    return fake_contexts


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def corpus_dir(tmp_path: Path) -> Path:
    """A small tree with hidden entries that indexing must skip."""
    root = tmp_path / "corpus"
    (root / "finance").mkdir(parents=True)
    (root / "travel").mkdir()
    (root / ".git").mkdir()
    (root / "finance" / "budget 2024.xlsx").write_text("")
    (root / "finance" / "tax return.pdf").write_text("")
    (root / "travel" / "flight tickets.pdf").write_text("")
    (root / ".git" / "config").write_text("")
    (root / ".DS_Store").write_text("")
    return root
