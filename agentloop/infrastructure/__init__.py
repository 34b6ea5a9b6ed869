"""Infrastructure Layer: provider adapters, HTTP transport, and logging.

Invariants:
    - Infrastructure never imports from services/
    - Adapters are pure protocol translators; only the transport does IO
"""
