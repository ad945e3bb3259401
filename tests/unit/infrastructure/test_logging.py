"""Unit tests for logging configuration."""

from __future__ import annotations

import json
from collections.abc import Iterator

import pytest
import structlog

from infra_orchestrator.infrastructure.observability.logging import setup_logging


@pytest.fixture(autouse=True)
def reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestLogging:
    def test_setup_logging_levels(self) -> None:
        for level in ("DEBUG", "INFO", "WARNING", "bogus"):
            setup_logging(level)  # Should not raise

    def test_json_output_carries_service(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("INFO", service_name="orchestrator-test", json_output=True)
        structlog.get_logger("test").info("deployment_submitted", deployment_id="d1")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "deployment_submitted"
        assert event["deployment_id"] == "d1"
        assert event["service"] == "orchestrator-test"
        assert event["level"] == "info"
        assert "timestamp" in event

    def test_level_filtering(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("WARNING")
        structlog.get_logger("test").info("ignored_event")
        assert "ignored_event" not in capsys.readouterr().out

    def test_console_renderer(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("INFO", json_output=False)
        structlog.get_logger("test").info("console_event")
        assert "console_event" in capsys.readouterr().out
