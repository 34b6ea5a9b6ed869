"""Services Layer: the agentic loop orchestrator and its helpers.

Invariants:
    - The loop depends on adapters and collaborators only through protocols
"""
