"""Service test fixtures: sink, tool executor and agent config for AgentLoop tests."""

import pytest

from agentloop.core.domain_types import Provider
from agentloop.schemas.agent import AgentConfig, ToolDef

from tests.services.mock_transport import FakeToolExecutor, RecordingSink

MODEL = "claude-sonnet-4-5-20250929"

CALCULATOR = ToolDef(
    name="calculator",
    description="Evaluate an arithmetic expression",
    input_schema={
        "type": "object",
        "properties": {"expression": {"type": "string"}},
        "required": ["expression"],
    },
)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def executor():
    return FakeToolExecutor()


@pytest.fixture
def config():
    return AgentConfig(
        id="agent-test", name="Test Agent", model=MODEL,
        provider=Provider.ANTHROPIC, tools=(CALCULATOR,),
    )
