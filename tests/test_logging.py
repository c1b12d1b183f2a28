"""Tests for structured logging setup."""

import json

import pytest
import structlog
from structlog.testing import capture_logs

from casebook.utils.logging import configure_logging, get_logger, log_context


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestGetLogger:
    """Tests for module loggers."""

    def test_package_imports_and_logs(self) -> None:
        import casebook.studies  # noqa: F401

        with capture_logs() as logs:
            get_logger("casebook.studies.cells").info("Tuning decision tree", candidates=25)

        assert len(logs) == 1
        assert logs[0]["event"] == "Tuning decision tree"
        assert logs[0]["candidates"] == 25
        assert logs[0]["logger_name"] == "casebook.studies.cells"

    def test_unnamed_logger(self) -> None:
        with capture_logs() as logs:
            get_logger().warning("No name")
        assert logs[0]["log_level"] == "warning"
        assert "logger_name" not in logs[0]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_to_stderr(self, capsys: pytest.CaptureFixture[str], reset_structlog: None) -> None:
        configure_logging(level="INFO", json_output=True)
        with log_context(study="hotels"):
            get_logger("casebook.test").info("Fitted model", n_samples=10)

        captured = capsys.readouterr()
        assert captured.out == ""
        event = json.loads(captured.err.strip().splitlines()[-1])
        assert event["event"] == "Fitted model"
        assert event["study"] == "hotels"
        assert event["logger_name"] == "casebook.test"
        assert event["level"] == "info"

    def test_level_filters(self, capsys: pytest.CaptureFixture[str], reset_structlog: None) -> None:
        configure_logging(level="WARNING", json_output=True)
        get_logger("casebook.test").info("Hidden")
        assert "Hidden" not in capsys.readouterr().err
