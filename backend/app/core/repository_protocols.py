"""Boundary Protocols: contracts between core and shell for outbound collaborators.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - Collaborators with IO are reached only through these Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Async in Protocol: implementations do network IO, the core itself never awaits
"""

from typing import Protocol


class MessageGateway(Protocol):
    """Outbound SMS/WhatsApp sender. Fire-and-forget from the core's viewpoint."""

    async def send(self, to: str, body: str) -> str | None:
        """Deliver `body` to `to`; returns the provider message id when known."""
        ...
