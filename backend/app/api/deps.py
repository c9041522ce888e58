"""Request Dependencies: caller resolution, collaborators and service wiring.

Invariants:
    - require_caller raises UnauthenticatedError before any DB read
    - Services receive an AsyncSession and a NotificationOutbox bound to the
      request's BackgroundTasks; nothing is shared across requests

Design Decisions:
    - get_message_gateway is its own dependency so tests override delivery
      without touching settings
"""

from fastapi import BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.core.authorization import Caller
from app.core.errors import UnauthenticatedError
from app.core.repository_protocols import MessageGateway
from app.infrastructure.database import get_db
from app.infrastructure.identity import get_caller
from app.infrastructure.messaging import TwilioMessageGateway
from app.services.booking_service import BookingService
from app.services.notification_outbox import NotificationOutbox
from app.services.referral_ledger import ReferralLedger
from app.services.vetting_pipeline import VettingPipeline


async def require_caller(caller: Caller | None = Depends(get_caller)) -> Caller:
    if caller is None:
        raise UnauthenticatedError()
    return caller


def get_message_gateway(
    settings: Settings = Depends(get_settings),
) -> MessageGateway | None:
    if not settings.messaging_enabled:
        return None
    return TwilioMessageGateway(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_whatsapp_from,
        api_base=settings.twilio_api_base,
        timeout_seconds=settings.messaging_timeout_seconds,
    )


def get_outbox(
    background_tasks: BackgroundTasks,
    gateway: MessageGateway | None = Depends(get_message_gateway),
) -> NotificationOutbox:
    return NotificationOutbox(gateway, background_tasks.add_task)


def get_booking_service(
    db: AsyncSession = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
) -> BookingService:
    return BookingService(db, notifier=outbox)


def get_referral_ledger(db: AsyncSession = Depends(get_db)) -> ReferralLedger:
    return ReferralLedger(db)


def get_vetting_pipeline(
    db: AsyncSession = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
) -> VettingPipeline:
    return VettingPipeline(db, notifier=outbox)
