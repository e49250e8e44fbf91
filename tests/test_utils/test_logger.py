from __future__ import annotations

import io
import logging
from typing import Generator

import pytest

from renvkeeper.utils.logger import (
    ColoredFormatter,
    disable_logging,
    get_logger,
    is_logging_configured,
    level_for_verbosity,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Leave the renvkeeper logger silent after every test."""
    yield
    disable_logging()


def _record(level: int = logging.INFO, msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("renvkeeper.test", level, __file__, 1, msg, None, None)


@pytest.mark.unit
class TestGetLogger:
    """Tests for get_logger naming."""

    def test_root(self) -> None:
        """Test no name returns the package logger."""
        assert get_logger().name == "renvkeeper"
        assert get_logger("renvkeeper").name == "renvkeeper"

    def test_child_names(self) -> None:
        """Test short and qualified names resolve to the same logger."""
        assert get_logger("registry") is get_logger("renvkeeper.registry")
        assert get_logger("registry").name == "renvkeeper.registry"


@pytest.mark.unit
class TestLevelForVerbosity:
    """Tests for the -v count mapping."""

    @pytest.mark.parametrize(
        "verbose, level",
        [(-1, logging.WARNING), (0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
    )
    def test_mapping(self, verbose: int, level: int) -> None:
        """Test each count maps to the expected level."""
        assert level_for_verbosity(verbose) == level


@pytest.mark.unit
class TestSetupLogging:
    """Tests for setup_logging and disable_logging."""

    def test_emits_to_stream(self) -> None:
        """Test records at or above the level reach the stream."""
        stream = io.StringIO()
        setup_logging(level=logging.INFO, stream=stream)

        get_logger("test").info("scanned %d files", 3)
        get_logger("test").debug("hidden")

        output = stream.getvalue()
        assert "INFO: scanned 3 files" in output
        assert "hidden" not in output

    def test_single_handler(self) -> None:
        """Test repeated setup never stacks handlers."""
        setup_logging(stream=io.StringIO())
        setup_logging(stream=io.StringIO())

        assert len(logging.getLogger("renvkeeper").handlers) == 1
        assert is_logging_configured() is True

    def test_verbose_format(self) -> None:
        """Test the verbose format includes the logger name."""
        stream = io.StringIO()
        setup_logging(level=logging.DEBUG, verbose=True, stream=stream)

        get_logger("reconciler").debug("details")

        assert "renvkeeper.reconciler - DEBUG - details" in stream.getvalue()

    def test_disable(self) -> None:
        """Test disable_logging silences output."""
        stream = io.StringIO()
        setup_logging(stream=stream)
        disable_logging()

        get_logger("test").warning("quiet")

        assert stream.getvalue() == ""
        assert is_logging_configured() is False


@pytest.mark.unit
class TestColoredFormatter:
    """Tests for ColoredFormatter."""

    def test_no_color(self) -> None:
        """Test use_color=False leaves the level name plain."""
        formatter = ColoredFormatter("%(levelname)s: %(message)s", use_color=False)
        assert formatter.format(_record()) == "INFO: hello"

    def test_color_on_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the level name is tinted on a terminal and restored afterwards."""
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("CI", raising=False)
        monkeypatch.setattr("renvkeeper.utils.logger._stderr_supports_color", lambda: True)
        formatter = ColoredFormatter("%(levelname)s: %(message)s")
        record = _record(logging.ERROR)

        output = formatter.format(record)

        assert output.startswith("\033[31mERROR\033[0m")
        assert record.levelname == "ERROR"

    def test_no_color_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test NO_COLOR disables tinting."""
        monkeypatch.setenv("NO_COLOR", "1")
        formatter = ColoredFormatter("%(levelname)s", use_color=True)
        assert formatter.format(_record(logging.WARNING)) == "WARNING"
