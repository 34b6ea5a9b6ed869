"""Error Hierarchy: typed, categorized exceptions for every loop failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Validation errors surface to the caller before any request is made
    - Transport errors are fatal to one loop invocation, never to the process
    - to_event() produces the canonical `error` AgentEvent

Design Decisions:
    - Single hierarchy with AgentLoopError base: the loop catches one type for reporting
    - ErrorContext as dataclass: rich observability without coupling to logging
    - Budget violations are NOT errors: they are reported via budget_exceeded events
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from agentloop.schemas.events import ErrorEvent


class ErrorSeverity(str, Enum):
    """Error severity for observability and caller handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    EXTERNAL_API = "external_api"
    TOOL = "tool"
    INTERNAL = "internal"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    agent_id: str | None = None
    provider: str | None = None
    tool_name: str | None = None
    iteration: int | None = None
    debug_info: dict[str, Any] | None = None


class AgentLoopError(Exception):
    """Base exception for all agentloop errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    def to_dict(self) -> dict:
        """Convert to a plain dict for logs and callers that persist failures."""
        return {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.context.timestamp.isoformat(),
            "context": {
                "agent_id": self.context.agent_id,
                "provider": self.context.provider,
                "tool_name": self.context.tool_name,
                "iteration": self.context.iteration,
            },
        }

    def to_event(self) -> ErrorEvent:
        """Convert to the canonical error event."""
        return ErrorEvent(error=self.message, code=self.code)


# ─── Validation Errors ──────────────────────────────────────────

class UnknownModelError(AgentLoopError):
    """Model id has no entry in the price table."""
    def __init__(self, model: str, context: ErrorContext | None = None):
        super().__init__(
            f"Unknown model '{model}': no pricing entry",
            "UNKNOWN_MODEL", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.model = model


class UnknownProviderError(AgentLoopError):
    """No adapter is registered for the requested provider."""
    def __init__(self, provider: str, context: ErrorContext | None = None):
        super().__init__(
            f"No adapter registered for provider '{provider}'",
            "UNKNOWN_PROVIDER", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.provider = provider


# ─── Infrastructure Errors ──────────────────────────────────────

class TransportError(AgentLoopError):
    """The streaming HTTP call failed (status, timeout, connection)."""
    def __init__(
        self,
        message: str,
        transport_error_type: str,
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        category = (
            ErrorCategory.TIMEOUT if transport_error_type == "timeout"
            else ErrorCategory.EXTERNAL_API
        )
        super().__init__(
            f"Transport error ({transport_error_type}): {message}",
            "TRANSPORT_ERROR", category,
            ErrorSeverity.CRITICAL, context,
        )
        self.transport_error_type = transport_error_type
        self.status_code = status_code


class ToolExecutionError(AgentLoopError):
    """A tool executor raised. Recovered locally as an is_error tool_result."""
    def __init__(
        self, tool_name: str, cause: BaseException,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.tool_name = tool_name
        super().__init__(
            f"Error: {cause}",
            "TOOL_EXECUTION_ERROR", ErrorCategory.TOOL,
            ErrorSeverity.WARNING, ctx,
        )
        self.tool_name = tool_name
        self.cause = cause
