"""Twilio Messaging Gateway: request shape, retries and error mapping.

Tests:
    - Form-encoded POST to Accounts/{sid}/Messages.json with basic auth
    - WhatsApp recipients get a whatsapp: prefixed sender
    - 5xx and transport errors retried up to max_retries, then MessagingGatewayError
    - 4xx fails immediately without retry
    - A 2xx with an unreadable body still counts as sent, without a SID
"""

from urllib.parse import parse_qs

import httpx
import pytest

from app.core.errors import MessagingGatewayError
from app.infrastructure.messaging import TwilioMessageGateway, _mask
from app.services.notification_outbox import NotificationOutbox


def _gateway(handler, **kwargs) -> TwilioMessageGateway:
    return TwilioMessageGateway(
        account_sid="AC123",
        auth_token="secret",
        from_number="+61400999999",
        base_delay_ms=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


async def test_send_posts_form_and_returns_sid():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"sid": "SM42", "status": "queued"})

    sid = await _gateway(handler).send("whatsapp:+61400000001", "hello")

    assert sid == "SM42"
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/2010-04-01/Accounts/AC123/Messages.json"
    assert request.headers["authorization"].startswith("Basic ")
    form = parse_qs(request.content.decode())
    assert form == {
        "From": ["whatsapp:+61400999999"],
        "To": ["whatsapp:+61400000001"],
        "Body": ["hello"],
    }


@pytest.mark.parametrize("response", [
    httpx.Response(201, text="OK"),
    httpx.Response(200, json=["queued"]),
])
async def test_accepted_without_json_object_returns_no_sid(response):
    calls = []

    def handler(request):
        calls.append(request)
        return response

    assert await _gateway(handler).send("+61400000002", "hi") is None
    assert len(calls) == 1


async def test_outbox_delivery_survives_non_json_acceptance():
    jobs = []
    gateway = _gateway(lambda request: httpx.Response(201, text="<Response/>"))
    outbox = NotificationOutbox(gateway, lambda fn, *args: jobs.append((fn, args)))

    assert outbox.enqueue("+61400000002", "hello") is True
    for fn, args in jobs:
        await fn(*args)


async def test_sms_recipient_keeps_plain_sender():
    forms = []

    def handler(request):
        forms.append(parse_qs(request.content.decode()))
        return httpx.Response(201, json={"sid": "SM1"})

    await _gateway(handler).send("+61400000002", "hi")
    assert forms[0]["From"] == ["+61400999999"]


async def test_transient_error_is_retried():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503, json={"message": "busy"})
        return httpx.Response(201, json={"sid": "SM2"})

    assert await _gateway(handler).send("+61400000002", "hi") == "SM2"
    assert len(calls) == 2


async def test_retries_exhausted_raises():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    with pytest.raises(MessagingGatewayError) as exc_info:
        await _gateway(handler, max_retries=2).send("+61400000002", "hi")
    assert len(calls) == 3
    assert exc_info.value.status_code == 500


async def test_client_error_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, json={"code": 21211, "message": "Invalid 'To' Phone Number"})

    with pytest.raises(MessagingGatewayError) as exc_info:
        await _gateway(handler).send("+1", "hi")
    assert len(calls) == 1
    assert "Invalid 'To' Phone Number" in exc_info.value.message


async def test_connection_errors_are_retried_then_mapped():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(MessagingGatewayError):
        await _gateway(handler, max_retries=1).send("+61400000002", "hi")
    assert len(calls) == 2


def test_mask_keeps_last_four_digits():
    assert _mask("whatsapp:+61400001234") == "***1234"
    assert _mask("123") == "***"
