"""Notification Outbox: message rendering and fire-and-forget delivery.

Tests:
    - Messages scheduled, not sent inline
    - Missing phone or disabled gateway -> nothing scheduled
    - Gateway failure during delivery is swallowed
"""

from uuid import UUID

from app.core.domain_types import BookingStatus, ReviewDecision
from app.services.notification_outbox import NotificationOutbox

BOOKING_ID = UUID("3f2a9c1e-0000-4000-8000-000000000000")


class _Scheduler:
    def __init__(self):
        self.jobs = []

    def __call__(self, fn, *args):
        self.jobs.append((fn, args))

    async def run_all(self):
        for fn, args in self.jobs:
            await fn(*args)


async def test_booking_decision_is_scheduled_not_sent(fake_gateway):
    scheduler = _Scheduler()
    outbox = NotificationOutbox(fake_gateway, scheduler)

    assert outbox.booking_decided("+61400000001", BOOKING_ID, BookingStatus.DECLINED) is True
    assert fake_gateway.sent == []

    await scheduler.run_all()
    assert fake_gateway.sent == [
        ("+61400000001", "Your booking 3F2A9C1E was declined by the performer."),
    ]


async def test_missing_phone_and_disabled_gateway_skip(fake_gateway):
    scheduler = _Scheduler()
    assert NotificationOutbox(fake_gateway, scheduler).enqueue(None, "x") is False
    assert NotificationOutbox(None, scheduler).enqueue("+61400000001", "x") is False
    assert scheduler.jobs == []


async def test_deposit_verified_counts_reachable_parties(fake_gateway):
    scheduler = _Scheduler()
    outbox = NotificationOutbox(fake_gateway, scheduler)

    sent = outbox.deposit_verified("+61400000001", None, BOOKING_ID, 20, "Side gate")
    await scheduler.run_all()

    assert sent == 1
    body = fake_gateway.sent[0][1]
    assert "20 min" in body
    assert "Side gate" in body


async def test_delivery_failure_is_swallowed(fake_gateway, caplog):
    fake_gateway.fail = True
    scheduler = _Scheduler()
    outbox = NotificationOutbox(fake_gateway, scheduler)

    outbox.application_reviewed("+61400000001", "DJ Jolt", ReviewDecision.APPROVE)
    await scheduler.run_all()

    assert fake_gateway.sent == []
    assert "Notification delivery failed" in caplog.text
