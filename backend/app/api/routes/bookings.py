"""Booking Routes: client creates a booking, performer approves or declines it.

Invariants:
    - Bodies validated by pydantic before the service runs (400 on failure)
    - Deposit percentage read from settings here and passed down explicitly
"""

from fastapi import APIRouter, Depends, status

from app.api.deps import get_booking_service, require_caller
from app.config import Settings, get_settings
from app.core.authorization import Caller
from app.core.domain_types import BookingStatus
from app.schemas.booking import (
    BookingCreate,
    BookingDecisionRequest,
    BookingDecisionResponse,
    BookingResponse,
)
from app.services.booking_service import BookingService

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


@router.post(
    "", response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    body: BookingCreate,
    caller: Caller = Depends(require_caller),
    service: BookingService = Depends(get_booking_service),
    settings: Settings = Depends(get_settings),
):
    """Create a pending booking with its deposit computed from the service rate."""
    return await service.create_booking(caller, body, settings.deposit_percentage)


@router.post("/decision", response_model=BookingDecisionResponse)
async def decide_booking(
    body: BookingDecisionRequest,
    caller: Caller = Depends(require_caller),
    service: BookingService = Depends(get_booking_service),
):
    """Performer approves or declines one of their pending bookings."""
    return await service.decide(caller, body.booking_id, BookingStatus(body.decision))
