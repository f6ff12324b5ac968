"""Tests for structured logging."""

import json
import logging
from pathlib import Path

import structlog

from pathsense.config.models import LoggingConfig, LogOutputConfig
from pathsense.core.logging import (
    clear_call_id,
    configure_logging,
    get_call_id,
    get_log_file_path,
    get_logger,
    set_call_id,
)
from pathsense.core.progress import suppress_console_logs


def _read_json_lines(path: Path) -> list[dict[str, object]]:
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


class TestCallIdCorrelation:
    """Call ID context variable tests."""

    def setup_method(self) -> None:
        clear_call_id()

    def test_given_call_id_when_set_then_can_retrieve(self) -> None:
        """Call ID can be set and retrieved."""
        # When
        set_call_id("call-7")

        # Then
        assert get_call_id() == "call-7"

    def test_given_set_id_when_clear_then_removes_id(self) -> None:
        """Clear removes the current call ID."""
        # Given
        set_call_id("call-1")

        # When
        clear_call_id()

        # Then
        assert get_call_id() is None


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        """Reset structlog and stdlib logging before each test."""
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()
        clear_call_id()

    def teardown_method(self) -> None:
        clear_call_id()
        logging.getLogger().handlers.clear()

    def test_given_file_output_when_log_then_json_lines_written(self, tmp_path: Path) -> None:
        """JSON file output carries event, fields, level and timestamp."""
        # Given
        log_file = tmp_path / "pathsense.log"
        configure_logging(
            config=LoggingConfig(
                level="INFO",
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )

        # When
        get_logger("test").info("indexing.started", total=25)

        # Then
        records = _read_json_lines(log_file)
        assert records[-1]["event"] == "indexing.started"
        assert records[-1]["total"] == 25
        assert records[-1]["level"] == "info"
        assert "timestamp" in records[-1]
        assert get_log_file_path() == log_file

    def test_given_call_id_bound_when_log_then_call_id_in_record(self, tmp_path: Path) -> None:
        """Records emitted while a call is in flight carry its id."""
        # Given
        log_file = tmp_path / "calls.log"
        configure_logging(
            config=LoggingConfig(
                level="DEBUG",
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )
        set_call_id("call-42")

        # When
        get_logger().debug("bridge.send", kind="embed")

        # Then
        assert _read_json_lines(log_file)[-1]["call_id"] == "call-42"

    def test_given_multi_output_config_when_configure_then_levels_respected(
        self, tmp_path: Path
    ) -> None:
        """Each output filters by its own level."""
        # Given
        debug_file = tmp_path / "debug.log"
        info_file = tmp_path / "info.log"
        configure_logging(
            config=LoggingConfig(
                level="DEBUG",
                outputs=[
                    LogOutputConfig(format="json", destination=str(info_file), level="INFO"),
                    LogOutputConfig(format="json", destination=str(debug_file)),
                ],
            )
        )

        # When
        logger = get_logger()
        logger.debug("debug only")
        logger.info("info msg")

        # Then
        info_content = info_file.read_text()
        assert "info msg" in info_content
        assert "debug only" not in info_content
        debug_content = debug_file.read_text()
        assert "debug only" in debug_content
        assert "info msg" in debug_content

    def test_given_console_suppressed_when_log_then_file_still_receives(
        self, tmp_path: Path
    ) -> None:
        """Suppressing console output leaves file outputs alone."""
        # Given
        log_file = tmp_path / "file.log"
        configure_logging(
            config=LoggingConfig(
                level="INFO",
                outputs=[
                    LogOutputConfig(format="console", destination="stderr"),
                    LogOutputConfig(format="json", destination=str(log_file)),
                ],
            )
        )

        # When
        with suppress_console_logs():
            get_logger().info("during progress bar")

        # Then
        assert "during progress bar" in log_file.read_text()
