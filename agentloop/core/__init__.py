"""Core Layer: pure domain logic, no IO, no network, no async.

Invariants:
    - No module in core/ imports from services/ or infrastructure/
    - Functions are pure, except SSEParser (holds its own line buffer) and
      the random ids given to recovered text tool calls

Design Decisions:
    - Functional core separated from the imperative shell that streams and
      executes tools
"""
