"""Core Layer: pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, models/ or db/
    - Fee Calculator, Authorization Guard and transition rules are deterministic

Design Decisions:
    - Functional core separated from imperative shell: services read state, call
      the core for a decision, then write
"""
