"""Notification Outbox: renders notification texts and hands them off for delivery.

Invariants:
    - enqueue() never awaits the gateway: delivery is scheduled, the caller returns
    - Delivery failures are logged and swallowed; a committed transition is never undone
    - Recipients without a phone number and a disabled gateway are skipped silently

Design Decisions:
    - `schedule` is injected (FastAPI BackgroundTasks.add_task in the API layer):
      the outbox has no web-framework dependency and tests can run it inline
"""

import logging
from typing import Any, Callable
from uuid import UUID

from app.core.domain_types import BookingStatus, ReviewDecision
from app.core.errors import MessagingGatewayError
from app.core.repository_protocols import MessageGateway

logger = logging.getLogger(__name__)

Scheduler = Callable[..., Any]


class NotificationOutbox:
    """Fire-and-forget notifier for booking and vetting events."""

    def __init__(self, gateway: MessageGateway | None, schedule: Scheduler):
        self.gateway = gateway
        self.schedule = schedule

    def enqueue(self, to: str | None, body: str) -> bool:
        if self.gateway is None:
            logger.debug("Messaging disabled; notification dropped")
            return False
        if not to:
            logger.debug("Recipient has no phone number; notification dropped")
            return False
        self.schedule(self._deliver, to, body)
        return True

    async def _deliver(self, to: str, body: str) -> None:
        try:
            await self.gateway.send(to, body)
        except MessagingGatewayError as e:
            logger.warning(
                f"Notification delivery failed: {e.message}",
                extra={"error_code": e.code},
            )

    # ─── Message templates ───────────────────────────────────────

    def booking_decided(
        self, client_phone: str | None, booking_id: UUID, decision: BookingStatus,
    ) -> bool:
        ref = _short_ref(booking_id)
        if decision is BookingStatus.APPROVED:
            body = (
                f"Good news! Your booking {ref} was approved by the performer. "
                "Pay the deposit via PayID and upload your receipt to confirm."
            )
        else:
            body = f"Your booking {ref} was declined by the performer."
        return self.enqueue(client_phone, body)

    def deposit_verified(
        self,
        client_phone: str | None,
        performer_phone: str | None,
        booking_id: UUID,
        eta_minutes: int | None,
        eta_note: str | None,
    ) -> int:
        ref = _short_ref(booking_id)
        client_body = f"Deposit received for booking {ref}. Your booking is confirmed."
        if eta_minutes:
            client_body += f" Performer ETA: {eta_minutes} min."
        if eta_note:
            client_body += f" Note: {eta_note}"
        performer_body = f"Deposit verified for booking {ref}. The event is confirmed."
        sent = [
            self.enqueue(client_phone, client_body),
            self.enqueue(performer_phone, performer_body),
        ]
        return sum(sent)

    def application_reviewed(
        self,
        applicant_phone: str | None,
        stage_name: str | None,
        decision: ReviewDecision,
    ) -> bool:
        name = stage_name or "there"
        if decision is ReviewDecision.APPROVE:
            body = (
                f"Hi {name}, your performer application was approved. "
                "Your verified profile is now live."
            )
        else:
            body = (
                f"Hi {name}, your performer application was not approved. "
                "Check your dashboard for the reviewer's notes."
            )
        return self.enqueue(applicant_phone, body)


def _short_ref(booking_id: UUID) -> str:
    return str(booking_id).split("-")[0].upper()
