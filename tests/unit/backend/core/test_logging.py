"""
Unit Tests for Structured Logging.

setup_logging() rewires the root logger, so every test restores it.
"""

import json
import logging
from types import SimpleNamespace

import pytest
import structlog

from simplenotes.backend.core.config_schema import LoggingSchema
from simplenotes.backend.core.logging import QUIET_LOGGERS, get_logger, setup_logging


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def yaml_config(monkeypatch):
    """Replace logging.yaml with the given values."""

    def apply(**values):
        config = LoggingSchema(**values)
        monkeypatch.setattr(
            "simplenotes.backend.core.logging.get_app_config",
            lambda: SimpleNamespace(logging=config),
        )

    return apply


def _json_lines(out: str) -> list[dict]:
    return [json.loads(line) for line in out.splitlines() if line.startswith("{")]


class TestSetupLogging:
    def test_installs_single_stdout_handler(self, yaml_config):
        yaml_config(level="INFO", format="console")

        setup_logging()
        setup_logging()

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, structlog.stdlib.ProcessorFormatter)

    def test_level_comes_from_yaml(self, yaml_config):
        yaml_config(level="ERROR", format="console")

        setup_logging()

        assert logging.getLogger().level == logging.ERROR

    def test_arguments_override_yaml(self, yaml_config):
        yaml_config(level="ERROR", format="console")

        setup_logging(level="debug")

        assert logging.getLogger().level == logging.DEBUG

    def test_chatty_libraries_are_quieted(self, yaml_config):
        yaml_config(level="DEBUG", format="console")

        setup_logging()

        for name in QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


class TestJsonOutput:
    def test_structlog_record(self, yaml_config, capsys):
        yaml_config(level="INFO", format="json")
        setup_logging()

        get_logger("simplenotes.test").info("Note created", note_id=7)

        (record,) = _json_lines(capsys.readouterr().out)
        assert record["event"] == "Note created"
        assert record["note_id"] == 7
        assert record["level"] == "info"
        assert record["logger"] == "simplenotes.test"
        assert record["timestamp"].endswith("Z")

    def test_request_context_is_merged(self, yaml_config, capsys):
        yaml_config(level="INFO", format="json")
        setup_logging()

        structlog.contextvars.bind_contextvars(request_id="req-1", frontend="web")
        get_logger("simplenotes.test").warning("Slow query")

        (record,) = _json_lines(capsys.readouterr().out)
        assert record["request_id"] == "req-1"
        assert record["frontend"] == "web"

    def test_stdlib_record_keeps_extra_fields(self, yaml_config, capsys):
        yaml_config(level="INFO", format="json")
        setup_logging()

        logging.getLogger("third.party").warning("Pool exhausted", extra={"pool_size": 5})

        (record,) = _json_lines(capsys.readouterr().out)
        assert record["event"] == "Pool exhausted"
        assert record["pool_size"] == 5
        assert record["logger"] == "third.party"

    def test_below_level_is_dropped(self, yaml_config, capsys):
        yaml_config(level="WARNING", format="json")
        setup_logging()

        get_logger("simplenotes.test").info("not shown")

        assert _json_lines(capsys.readouterr().out) == []

    def test_exception_is_rendered(self, yaml_config, capsys):
        yaml_config(level="INFO", format="json")
        setup_logging()

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            get_logger("simplenotes.test").exception("Query failed")

        (record,) = _json_lines(capsys.readouterr().out)
        assert "RuntimeError: boom" in record["exception"]
