"""Tests for core/progress.py module.

Covers:
- status() function
- pluralize() function
- progress_bar() context manager
- spinner() context manager
- suppress_console_logs() / is_console_suppressed()
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from pathsense.core.progress import (
    is_console_suppressed,
    pluralize,
    progress_bar,
    spinner,
    status,
    suppress_console_logs,
)


class TestStatus:
    """Tests for status function."""

    def test_prints_message(self) -> None:
        with patch("pathsense.core.progress._console") as mock_console:
            status("Test message")
            mock_console.print.assert_called_once()

    def test_success_style(self) -> None:
        with patch("pathsense.core.progress._console") as mock_console:
            status("Done", style="success")
            assert "✓" in mock_console.print.call_args[0][0]

    def test_warning_style(self) -> None:
        with patch("pathsense.core.progress._console") as mock_console:
            status("3 files failed", style="warning")
            assert "!" in mock_console.print.call_args[0][0]

    def test_with_indent(self) -> None:
        with patch("pathsense.core.progress._console") as mock_console:
            status("Indented", indent=4, style="none")
            assert mock_console.print.call_args[0][0] == "    Indented"


class TestPluralize:
    """Tests for pluralize function."""

    def test_singular_count_one(self) -> None:
        assert pluralize(1, "file") == "1 file"

    def test_plural_count_zero(self) -> None:
        assert pluralize(0, "file") == "0 files"

    def test_plural_count_multiple(self) -> None:
        assert pluralize(25, "file") == "25 files"

    def test_custom_plural(self) -> None:
        assert pluralize(2, "batch", "batches") == "2 batches"


class TestProgressBar:
    """Tests for progress_bar context manager."""

    def test_non_tty_update_only_logs(self) -> None:
        with (
            patch("pathsense.core.progress._is_tty", return_value=False),
            patch("pathsense.core.progress._console") as mock_console,
            progress_bar("Embedding", total=25) as update,
        ):
            update(10, 25)
            update(25, 25)

        mock_console.print.assert_not_called()

    def test_tty_suppresses_console_logs_while_active(self) -> None:
        with (
            patch("pathsense.core.progress._is_tty", return_value=True),
            patch("pathsense.core.progress.Progress") as mock_progress,
        ):
            pbar = mock_progress.return_value.__enter__.return_value
            with progress_bar("Embedding", total=3) as update:
                assert is_console_suppressed()
                update(3, 3)

        pbar.update.assert_called_once_with(pbar.add_task.return_value, completed=3, total=3)
        assert not is_console_suppressed()


class TestSpinner:
    """Tests for spinner context manager."""

    def test_non_tty_prints_message_once(self) -> None:
        with (
            patch("pathsense.core.progress._is_tty", return_value=False),
            patch("pathsense.core.progress._console") as mock_console,
        ):
            with spinner("Loading model") as update:
                update("Downloading model...")
            mock_console.print.assert_called_once()
            assert "Loading model" in mock_console.print.call_args[0][0]

    def test_tty_mode_updates_live_status(self) -> None:
        live = MagicMock()
        status_cm = MagicMock()
        status_cm.__enter__ = MagicMock(return_value=live)
        status_cm.__exit__ = MagicMock(return_value=None)

        with (
            patch("pathsense.core.progress._is_tty", return_value=True),
            patch("pathsense.core.progress._console") as mock_console,
        ):
            mock_console.status.return_value = status_cm
            with spinner("Loading model") as update:
                update("Downloading model: all-MiniLM-L6-v2...")

        mock_console.status.assert_called_once()
        assert "all-MiniLM-L6-v2" in live.update.call_args[0][0]


class TestSuppressConsoleLogs:
    """Tests for suppress_console_logs context manager."""

    def test_sets_suppression_flag(self) -> None:
        assert not is_console_suppressed()
        with suppress_console_logs():
            assert is_console_suppressed()
        assert not is_console_suppressed()

    def test_clears_flag_on_exception(self) -> None:
        with pytest.raises(ValueError), suppress_console_logs():
            raise ValueError("test")
        assert not is_console_suppressed()
