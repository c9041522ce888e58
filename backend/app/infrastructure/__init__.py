"""Infrastructure: database sessions, logging, identity and messaging adapters.

Invariants:
    - Only the shell (services/, api/) imports from here; core/ never does
"""
