"""Services Layer: transition orchestration over the pure core.

Invariants:
    - Each operation: authorize -> read current state -> pure rule check ->
      conditional write in one transaction -> audit -> notify
    - Services raise PlatformError subclasses only; the API layer maps them to HTTP

Design Decisions:
    - One service per aggregate (BookingService, ReferralLedger, VettingPipeline)
    - Collaborators (audit, notifier) injected through the constructor
"""
