"""Schemas: pydantic models for messages, canonical events, and agent config.

Invariants:
    - Every tagged union is discriminated on its `type` field
    - model_dump(exclude_none=True) produces the wire shape of each block
"""
