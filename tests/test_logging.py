"""Tests for logging configuration."""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from appctl.logging import configure_logging, log_to_file


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.mark.parametrize(
        ("verbosity", "quiet", "expected"),
        [
            (0, False, logging.INFO),
            (1, False, logging.DEBUG),
            (2, True, logging.WARNING),
        ],
    )
    def test_handler_level(self, verbosity: int, quiet: bool, expected: int) -> None:
        """-q wins over -v; one -v is enough for debug."""
        with patch("appctl.logging.logging.basicConfig") as mock_config:
            configure_logging(verbosity=verbosity, quiet=quiet)

        handler = mock_config.call_args.kwargs["handlers"][0]
        assert handler.level == expected
        assert mock_config.call_args.kwargs["level"] == expected

    def test_console_on_stderr(self) -> None:
        """The returned console writes to stderr and honours no_color."""
        with patch("appctl.logging.logging.basicConfig"):
            console = configure_logging(no_color=True)

        assert console.stderr
        assert console.no_color


class TestLogToFile:
    """Tests for the log_to_file context manager."""

    def test_records_mirrored_to_file(self, tmp_path: Path) -> None:
        """appctl records inside the block land in the file."""
        path = tmp_path / "logs" / "build.log"
        logger = logging.getLogger("appctl.core.build_pipeline")

        with log_to_file(path):
            logger.debug("debug detail")
            logger.warning("something odd")

        text = path.read_text()
        assert "debug detail" in text
        assert "WARNING" in text
        assert "something odd" in text

    def test_handler_removed_after_block(self, tmp_path: Path) -> None:
        """Records after the block are not written and the level is restored."""
        path = tmp_path / "build.log"
        appctl_logger = logging.getLogger("appctl")
        before = appctl_logger.level

        with log_to_file(path) as handler:
            assert handler in appctl_logger.handlers
        logging.getLogger("appctl.x").warning("after")

        assert handler not in appctl_logger.handlers
        assert appctl_logger.level == before
        assert "after" not in path.read_text()

    def test_other_loggers_not_captured(self, tmp_path: Path) -> None:
        """Only the appctl logger hierarchy is mirrored."""
        path = tmp_path / "build.log"
        with log_to_file(path):
            logging.getLogger("urllib3").warning("unrelated")
        assert "unrelated" not in path.read_text()
