"""Pydantic Schemas: request/response validation for API endpoints.

Invariants:
    - Request schemas forbid unknown fields and accept camelCase (bookingId) or
      snake_case (booking_id) keys
    - Response schemas read straight from ORM rows (from_attributes)

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
