"""Gemini schema conversion tests."""

from agentloop.core.tool_schema import to_gemini_schema


def test_types_uppercased_recursively():
    schema = {
        "type": "object",
        "properties": {
            "path": {"type": "string"},
            "tags": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["path"],
    }
    converted = to_gemini_schema(schema)
    assert converted["type"] == "OBJECT"
    assert converted["properties"]["path"]["type"] == "STRING"
    assert converted["properties"]["tags"]["type"] == "ARRAY"
    assert converted["properties"]["tags"]["items"]["type"] == "STRING"
    assert converted["required"] == ["path"]


def test_additional_properties_dropped():
    converted = to_gemini_schema({
        "type": "object", "properties": {}, "additionalProperties": False,
    })
    assert "additionalProperties" not in converted


def test_bare_object_gets_empty_properties():
    assert to_gemini_schema({"type": "object"}) == {"type": "OBJECT", "properties": {}}


def test_input_not_mutated():
    schema = {"type": "object", "properties": {"n": {"type": "integer"}}}
    to_gemini_schema(schema)
    assert schema["type"] == "object"
    assert schema["properties"]["n"]["type"] == "integer"
