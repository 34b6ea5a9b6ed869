"""Tool Schema Conversion: JSON Schema rewrites for providers with narrower support.

Invariants:
    - Pure: returns new dicts, never mutates the input schema
    - Recurses into `properties` and `items`
"""

from typing import Any


def to_gemini_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Gemini native: UPPERCASE types, no additionalProperties, objects need properties.

    A bare {"type": "object"} without properties makes Gemini silently fall
    back to text-based tool calls.
    """
    result = dict(schema)
    result.pop("additionalProperties", None)

    if isinstance(result.get("type"), str):
        result["type"] = result["type"].upper()
    if result.get("type") == "OBJECT" and not result.get("properties"):
        result["properties"] = {}

    props = result.get("properties")
    if isinstance(props, dict):
        result["properties"] = {
            key: to_gemini_schema(value) if isinstance(value, dict) else value
            for key, value in props.items()
        }
    if isinstance(result.get("items"), dict):
        result["items"] = to_gemini_schema(result["items"])
    return result
