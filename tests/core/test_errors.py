"""Error hierarchy tests: codes, categories, event conversion."""

from agentloop.core.errors import (
    AgentLoopError, ErrorCategory, ErrorContext, ErrorSeverity,
    ToolExecutionError, TransportError, UnknownModelError, UnknownProviderError,
)


def test_transport_error_fields():
    err = TransportError("HTTP 529: overloaded", "http_status", status_code=529)
    assert isinstance(err, AgentLoopError)
    assert err.code == "TRANSPORT_ERROR"
    assert err.status_code == 529
    assert err.category == ErrorCategory.EXTERNAL_API
    assert err.severity == ErrorSeverity.CRITICAL
    assert "overloaded" in err.message


def test_transport_timeout_category():
    err = TransportError("read timeout", "timeout")
    assert err.category == ErrorCategory.TIMEOUT


def test_to_event():
    event = UnknownModelError("mystery").to_event()
    assert event.type == "error"
    assert event.code == "UNKNOWN_MODEL"
    assert "mystery" in event.error


def test_unknown_provider_is_validation_error():
    err = UnknownProviderError("bedrock")
    assert err.category == ErrorCategory.VALIDATION
    assert err.code == "UNKNOWN_PROVIDER"


def test_tool_execution_error_message_and_context():
    err = ToolExecutionError("calc", ValueError("boom"), ErrorContext(agent_id="a1"))
    assert err.message == "Error: boom"
    assert err.context.tool_name == "calc"
    assert err.context.agent_id == "a1"
    assert err.category == ErrorCategory.TOOL


def test_to_dict_serializes_context():
    data = TransportError("x", "connection_error", context=ErrorContext(provider="openai")).to_dict()
    assert data["code"] == "TRANSPORT_ERROR"
    assert data["category"] == "external_api"
    assert data["context"]["provider"] == "openai"
    assert isinstance(data["timestamp"], str)
