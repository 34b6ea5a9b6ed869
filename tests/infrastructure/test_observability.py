"""Loop logging tests: JSON shape, context fields, settings-driven install."""

import json
import logging

import pytest

from agentloop.config import Settings
from agentloop.infrastructure.observability import (
    LOGGER_NAME, JSONFormatter, configure_logging,
)


# -- Helpers -------------------------------------------------------------------

def _record(**extra):
    record = logging.LogRecord(
        "agentloop.services.agent_loop", logging.WARNING, __file__, 1,
        "hello %s", ("world",), None,
    )
    record.created = 0.0
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def package_logger():
    logger = logging.getLogger(LOGGER_NAME)
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers = handlers
    logger.setLevel(level)


# -- Formatter -----------------------------------------------------------------

def test_json_formatter_base_fields():
    data = json.loads(JSONFormatter().format(_record()))
    assert data["level"] == "WARNING"
    assert data["logger"] == "agentloop.services.agent_loop"
    assert data["message"] == "hello world"
    assert data["timestamp"] == "1970-01-01T00:00:00+00:00"


def test_json_formatter_surfaces_loop_context():
    data = json.loads(JSONFormatter().format(_record(
        agent_id="a1", tool_name="calc", iteration=3, input_tokens=100, unrelated="x",
    )))
    assert data["agent_id"] == "a1"
    assert data["tool_name"] == "calc"
    assert data["iteration"] == 3
    assert data["input_tokens"] == 100
    assert "unrelated" not in data


def test_json_formatter_custom_fields():
    data = json.loads(JSONFormatter(fields=("request_id",)).format(_record(
        request_id="r-9", agent_id="a1",
    )))
    assert data["request_id"] == "r-9"
    assert "agent_id" not in data


# -- configure_logging ---------------------------------------------------------

def test_configure_logging_reads_settings(package_logger):
    settings = Settings(_env_file=None, log_level="debug", log_format="json")

    handler = configure_logging(settings=settings)

    assert handler in package_logger.handlers
    assert package_logger.level == logging.DEBUG
    assert isinstance(handler.formatter, JSONFormatter)
    assert handler not in logging.root.handlers


def test_configure_logging_arguments_override_settings(package_logger):
    settings = Settings(_env_file=None, log_level="DEBUG", log_format="json")

    handler = configure_logging("warning", "text", settings=settings)

    assert package_logger.level == logging.WARNING
    assert not isinstance(handler.formatter, JSONFormatter)


def test_configure_logging_replaces_its_own_handler(package_logger):
    first = configure_logging(settings=Settings(_env_file=None))
    second = configure_logging(settings=Settings(_env_file=None))

    assert first not in package_logger.handlers
    assert package_logger.handlers.count(second) == 1


def test_text_format_without_agent_id(package_logger):
    handler = configure_logging("info", "text", settings=Settings(_env_file=None))
    record = _record()

    assert all(f.filter(record) for f in handler.filters)
    assert "[-]: hello world" in handler.format(record)
