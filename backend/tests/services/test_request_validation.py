"""Request Validation Envelope: 400 responses list every failing field.

Invariants:
    - Body validation failures never reach a service (no rows written)
    - error.details carries one entry per failing field, named by its camelCase key
"""

from sqlalchemy import func, select

from app.models import Booking


async def test_all_failing_fields_reported(client, seed, auth, read_session):
    res = await client.post(
        "/api/v1/bookings",
        json={"performerId": "not-a-uuid", "eventDatetime": "yesterday"},
        headers=auth(seed.client),
    )
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert {d["field"] for d in error["details"]} == {
        "performerId", "serviceId", "eventDatetime",
    }
    async with read_session() as s:
        assert await s.scalar(select(func.count()).select_from(Booking)) == 0


async def test_extra_field_is_rejected(client, seed, auth):
    res = await client.post(
        "/api/v1/bookings/decision",
        json={"bookingId": str(seed.service.id), "decision": "approved", "force": True},
        headers=auth(seed.performer),
    )
    assert res.status_code == 400
    assert [d["field"] for d in res.json()["error"]["details"]] == ["force"]


async def test_decision_outside_enum_is_rejected(client, seed, auth):
    res = await client.post(
        "/api/v1/bookings/decision",
        json={"bookingId": str(seed.service.id), "decision": "maybe"},
        headers=auth(seed.performer),
    )
    assert res.status_code == 400


async def test_health_probe(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"
