"""Tests for pathsense search command."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from pathsense.cli.main import cli

runner = CliRunner()


@pytest.fixture
def indexed(data_dir: Path, corpus_dir: Path, fake_process_context: list[Any]) -> Path:
    result = runner.invoke(cli, ["--data-dir", str(data_dir), "index", str(corpus_dir)])
    assert result.exit_code == 0, result.output
    return data_dir


class TestSearchCommand:
    """pathsense search QUERY."""

    def test_given_indexed_files_when_search_then_best_match_first(self, indexed: Path) -> None:
        # When
        result = runner.invoke(cli, ["--data-dir", str(indexed), "search", "flight tickets", "--json"])

        # Then
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["query"] == "flight tickets"
        assert payload["results"][0]["path"].endswith("travel/flight tickets.pdf")
        assert set(payload["results"][0]) == {"path", "score"}

    def test_given_top_k_then_result_count_limited(self, indexed: Path) -> None:
        result = runner.invoke(
            cli, ["--data-dir", str(indexed), "search", "budget", "-k", "1", "--json"]
        )

        assert result.exit_code == 0, result.output
        assert len(json.loads(result.stdout)["results"]) == 1

    def test_given_scope_then_only_scoped_paths(self, indexed: Path, corpus_dir: Path) -> None:
        scope = str(corpus_dir.resolve() / "finance")

        result = runner.invoke(
            cli, ["--data-dir", str(indexed), "search", "tickets", "--scope", scope, "--json"]
        )

        assert result.exit_code == 0, result.output
        paths = [r["path"] for r in json.loads(result.stdout)["results"]]
        assert paths
        assert all(p.startswith(scope) for p in paths)

    def test_given_table_output_then_paths_printed(self, indexed: Path) -> None:
        result = runner.invoke(
            cli, ["--data-dir", str(indexed), "search", "budget"], env={"COLUMNS": "400"}
        )

        assert result.exit_code == 0, result.output
        assert "budget 2024.xlsx" in result.output

    def test_given_empty_store_then_no_model_started(
        self, data_dir: Path, fake_process_context: list[Any]
    ) -> None:
        result = runner.invoke(cli, ["--data-dir", str(data_dir), "search", "anything", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["results"] == []
        assert fake_process_context == []

    def test_given_blank_query_then_no_model_started(
        self, indexed: Path, fake_process_context: list[Any]
    ) -> None:
        started = len(fake_process_context)

        result = runner.invoke(cli, ["--data-dir", str(indexed), "search", "  ", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["results"] == []
        assert len(fake_process_context) == started

    def test_given_top_k_out_of_range_then_usage_error(self, data_dir: Path) -> None:
        result = runner.invoke(cli, ["--data-dir", str(data_dir), "search", "x", "-k", "0"])

        assert result.exit_code == 2
