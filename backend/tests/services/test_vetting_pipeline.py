"""Vetting Pipeline: submission, review, escalation, expiry and approval atomicity.

Invariants:
    - Approve commits application status, performers row and applicant role together
    - A failure at any step of approval leaves the application pending, no performer,
      role unchanged
    - approved, rejected, expired are terminal
    - One open application per applicant; performers and admins cannot apply
"""

from datetime import date
from uuid import UUID, uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import DatabaseError
from app.models import AuditLogEntry, Performer, User, VettingApplication
from app.services.vetting_pipeline import VettingPipeline


def _application_payload(**overrides) -> dict:
    payload = {
        "fullName": "Casey Client",
        "stageName": "Casey Sparkle",
        "email": "casey@example.com",
        "phone": "+61400000001",
        "dateOfBirth": "1995-04-12",
        "location": "Melbourne",
        "performanceType": "fire dancer",
        "experienceYears": 6,
        "bio": "Fire and LED performer with six years of festival and corporate work.",
        "portfolioUrls": ["https://portfolio.example.com/casey"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
async def application(client, seed, auth) -> dict:
    res = await client.post(
        "/api/v1/vetting/applications",
        json=_application_payload(),
        headers=auth(seed.client),
    )
    assert res.status_code == 201, res.text
    return res.json()


async def _review(client, seed, auth, application_id, decision, notes=""):
    return await client.post(
        "/api/v1/admin/vetting/review",
        json={"applicationId": application_id, "decision": decision, "notes": notes},
        headers=auth(seed.admin),
    )


async def _performer_count(read_session) -> int:
    async with read_session() as s:
        return await s.scalar(select(func.count()).select_from(Performer))


async def test_submit_creates_pending_application(application, seed):
    assert application["status"] == "pending"
    assert application["user_id"] == str(seed.client.id)
    assert application["stage_name"] == "Casey Sparkle"


async def test_second_open_application_is_rejected(client, seed, auth, application):
    res = await client.post(
        "/api/v1/vetting/applications",
        json=_application_payload(),
        headers=auth(seed.client),
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_STATE"


async def test_racing_submissions_leave_one_open_application(
    client, seed, auth, read_session, monkeypatch,
):
    # Both requests pass the open-application check before either inserts
    async def _nothing_open(self, user_id):
        return None

    monkeypatch.setattr(VettingPipeline, "_open_application_id", _nothing_open)

    first = await client.post(
        "/api/v1/vetting/applications",
        json=_application_payload(),
        headers=auth(seed.client),
    )
    second = await client.post(
        "/api/v1/vetting/applications",
        json=_application_payload(stageName="Casey Again"),
        headers=auth(seed.client),
    )

    assert first.status_code == 201, first.text
    assert second.status_code == 400
    assert second.json()["error"]["code"] == "INVALID_STATE"
    async with read_session() as s:
        open_count = await s.scalar(
            select(func.count()).select_from(VettingApplication).where(
                VettingApplication.user_id == seed.client.id,
                VettingApplication.status.in_(["pending", "needs_review"]),
            )
        )
    assert open_count == 1


@pytest.mark.parametrize("who", ["performer", "admin"])
async def test_non_clients_cannot_apply(client, seed, auth, who):
    res = await client.post(
        "/api/v1/vetting/applications",
        json=_application_payload(),
        headers=auth(getattr(seed, who)),
    )
    assert res.status_code == 403


async def test_under_age_applicant_rejected_at_validation(client, seed, auth):
    today = date.today()
    seventeen = date(today.year - 17, today.month, min(today.day, 28)).isoformat()
    res = await client.post(
        "/api/v1/vetting/applications",
        json=_application_payload(dateOfBirth=seventeen),
        headers=auth(seed.client),
    )
    assert res.status_code == 400
    fields = [d["field"] for d in res.json()["error"]["details"]]
    assert fields == ["dateOfBirth"]


async def test_approve_provisions_performer_and_promotes_role(
    client, seed, auth, application, read_session, fake_gateway,
):
    res = await _review(client, seed, auth, application["id"], "approve", "Great reel")
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["application"]["status"] == "approved"
    assert body["application"]["reviewer_id"] == str(seed.admin.id)
    assert body["application"]["approval_notes"] == "Great reel"
    assert body["performer"]["stage_name"] == "Casey Sparkle"
    assert body["performer"]["performance_types"] == ["fire dancer"]
    assert body["performer"]["service_areas"] == ["Melbourne"]
    assert body["performer"]["verified"] is True

    async with read_session() as s:
        user = await s.get(User, seed.client.id)
        audit = await s.scalar(
            select(AuditLogEntry).where(
                AuditLogEntry.action == "review_vetting_application",
            )
        )
    assert user.role == "performer"
    assert audit.metadata_["decision"] == "approve"
    assert audit.metadata_["performer_id"] == body["performer"]["id"]
    assert [to for to, _ in fake_gateway.sent] == ["+61400000001"]


async def test_reject_stores_reason_without_performer(
    client, seed, auth, application, read_session,
):
    res = await _review(client, seed, auth, application["id"], "reject", "Portfolio link broken")
    assert res.status_code == 200
    body = res.json()
    assert body["application"]["status"] == "rejected"
    assert body["application"]["rejection_reason"] == "Portfolio link broken"
    assert body["performer"] is None
    assert await _performer_count(read_session) == 0


async def test_reject_without_notes_is_validation_error(client, seed, auth, application):
    res = await _review(client, seed, auth, application["id"], "reject", "")
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_terminal_application_cannot_be_reviewed_again(
    client, seed, auth, application, read_session,
):
    await _review(client, seed, auth, application["id"], "approve")
    again = await _review(client, seed, auth, application["id"], "approve")
    assert again.status_code == 400
    assert await _performer_count(read_session) == 1


async def test_review_requires_admin(client, seed, auth, application):
    res = await client.post(
        "/api/v1/admin/vetting/review",
        json={"applicationId": application["id"], "decision": "approve"},
        headers=auth(seed.performer),
    )
    assert res.status_code == 403


async def test_review_unknown_application_returns_404(client, seed, auth):
    res = await _review(client, seed, auth, str(uuid4()), "approve")
    assert res.status_code == 404


async def test_performer_insert_failure_rolls_back_approval(
    client, seed, auth, application, read_session, monkeypatch,
):
    """Fault after the status UPDATE: application stays pending, role unchanged."""
    async def _boom(self, application):
        raise SQLAlchemyError("performer insert failed")

    monkeypatch.setattr(VettingPipeline, "_provision_performer", _boom)

    res = await _review(client, seed, auth, application["id"], "approve")
    assert res.status_code == 500
    assert res.json()["error"]["code"] == "DATABASE_ERROR"

    async with read_session() as s:
        row = await s.get(VettingApplication, UUID(application["id"]))
        user = await s.get(User, seed.client.id)
    assert row.status == "pending"
    assert row.reviewer_id is None
    assert user.role == "client"
    assert await _performer_count(read_session) == 0


async def test_role_update_failure_rolls_back_performer_row(
    client, seed, auth, application, read_session, monkeypatch,
):
    """Fault after the performer INSERT: the performer row disappears with the rest."""
    async def _boom(self, user_id):
        raise DatabaseError(f"applicant account {user_id} missing", "update")

    monkeypatch.setattr(VettingPipeline, "_promote_applicant", _boom)

    res = await _review(client, seed, auth, application["id"], "approve")
    assert res.status_code == 500

    async with read_session() as s:
        row = await s.get(VettingApplication, UUID(application["id"]))
    assert row.status == "pending"
    assert await _performer_count(read_session) == 0


async def test_escalate_then_approve(client, seed, auth, application):
    res = await client.post(
        "/api/v1/admin/vetting/escalate",
        json={"applicationId": application["id"], "notes": "Check ID documents"},
        headers=auth(seed.admin),
    )
    assert res.status_code == 200
    assert res.json()["status"] == "needs_review"
    assert res.json()["review_notes"] == "Check ID documents"

    approved = await _review(client, seed, auth, application["id"], "approve")
    assert approved.status_code == 200
    assert approved.json()["application"]["status"] == "approved"


async def test_escalating_twice_is_invalid(client, seed, auth, application):
    payload = {"applicationId": application["id"]}
    await client.post("/api/v1/admin/vetting/escalate", json=payload, headers=auth(seed.admin))
    again = await client.post(
        "/api/v1/admin/vetting/escalate", json=payload, headers=auth(seed.admin),
    )
    assert again.status_code == 400


async def test_expired_application_is_terminal_and_frees_applicant(
    client, seed, auth, application,
):
    res = await client.post(
        "/api/v1/admin/vetting/expire",
        json={"applicationId": application["id"]},
        headers=auth(seed.admin),
    )
    assert res.status_code == 200
    assert res.json()["status"] == "expired"

    review = await _review(client, seed, auth, application["id"], "approve")
    assert review.status_code == 400

    resubmit = await client.post(
        "/api/v1/vetting/applications",
        json=_application_payload(),
        headers=auth(seed.client),
    )
    assert resubmit.status_code == 201
