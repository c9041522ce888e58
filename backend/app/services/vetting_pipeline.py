"""Vetting Pipeline: application intake, admin review, escalation and expiry.

Invariants:
    - Approval is ONE transaction: conditional application UPDATE, performer INSERT,
      applicant role UPDATE; any failure rolls back all three
    - status = approved never exists without its performers row
    - Every transition re-checks status IN (allowed sources) inside its UPDATE,
      so two concurrent approvals produce one performer at most
    - One open (pending | needs_review) application per applicant: pre-checked for
      a clear error, enforced by the partial unique index when submissions race

Design Decisions:
    - _provision_performer and _promote_applicant are separate awaits inside the
      transaction so each write's failure path is observable in isolation
    - Notification goes out only after commit and only for approve/reject
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authorization import Caller, authorize
from app.core.domain_types import (
    ApplicationStatus, AuditAction, Operation, ReviewDecision, Role,
)
from app.core.errors import (
    DatabaseError, ErrorContext, InvalidStateError, ResourceNotFoundError,
)
from app.core.vetting_rules import (
    REVIEWABLE,
    check_application_transition,
    derive_performer_profile,
    sources_for,
    target_for_decision,
)
from app.infrastructure.database import atomic
from app.models.performer import Performer
from app.models.user import User
from app.models.vetting_application import VettingApplication
from app.schemas.vetting import (
    PerformerResponse,
    VettingApplicationCreate,
    VettingApplicationResponse,
    VettingReviewResponse,
)
from app.services.audit_recorder import AuditRecorder
from app.services.notification_outbox import NotificationOutbox

logger = logging.getLogger(__name__)

_TABLE = "vetting_applications"


def _lost_race(application_id: UUID) -> InvalidStateError:
    return InvalidStateError(
        "Application was reviewed concurrently",
        context=ErrorContext(target_table=_TABLE, target_id=str(application_id)),
    )


def _already_open(application_id: str | None) -> InvalidStateError:
    return InvalidStateError(
        "An application is already awaiting review",
        current_state=ApplicationStatus.PENDING.value,
        context=ErrorContext(target_table=_TABLE, target_id=application_id),
    )


class VettingPipeline:
    """Vetting application state machine."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationOutbox | None = None,
        audit: AuditRecorder | None = None,
    ):
        self.db = db
        self.notifier = notifier
        self.audit = audit or AuditRecorder(db)

    async def _get_application(self, application_id: UUID) -> VettingApplication:
        application = await self.db.get(VettingApplication, application_id)
        if application is None:
            raise ResourceNotFoundError("VettingApplication", str(application_id))
        return application

    # ─── submitVettingApplication ────────────────────────────────

    async def submit(
        self, caller: Caller | None, body: VettingApplicationCreate,
    ) -> VettingApplicationResponse:
        caller = authorize(caller, Operation.SUBMIT_APPLICATION)

        open_application = await self._open_application_id(caller.user_id)
        if open_application is not None:
            raise _already_open(str(open_application))

        application = VettingApplication(
            user_id=caller.user_id,
            full_name=body.full_name,
            stage_name=body.stage_name,
            email=str(body.email),
            phone=body.phone,
            date_of_birth=body.date_of_birth,
            location=body.location,
            performance_type=body.performance_type,
            experience_years=body.experience_years,
            bio=body.bio,
            portfolio_urls=body.portfolio_urls,
            document_urls=body.document_urls,
            status=ApplicationStatus.PENDING.value,
        )
        async with atomic(self.db, "submit_vetting_application"):
            self.db.add(application)
            try:
                await self.db.flush()
            except IntegrityError as e:
                # a concurrent submission won the open-application index
                raise _already_open(None) from e
        await self.db.refresh(application)

        response = VettingApplicationResponse.model_validate(application)
        logger.info(
            "Vetting application submitted",
            extra={"application_id": response.id, "actor_id": caller.user_id},
        )
        await self.audit.record(
            actor_id=caller.user_id,
            action=AuditAction.SUBMIT_VETTING_APPLICATION,
            target_table=_TABLE,
            target_id=response.id,
            metadata={"performance_type": body.performance_type},
        )
        return response

    async def _open_application_id(self, user_id: UUID) -> UUID | None:
        return await self.db.scalar(
            select(VettingApplication.id).where(
                VettingApplication.user_id == user_id,
                VettingApplication.status.in_([s.value for s in REVIEWABLE]),
            )
        )

    # ─── reviewVettingApplication ────────────────────────────────

    async def review(
        self,
        caller: Caller | None,
        application_id: UUID,
        decision: ReviewDecision,
        notes: str,
    ) -> VettingReviewResponse:
        caller = authorize(caller, Operation.REVIEW_APPLICATION)
        application = await self._get_application(application_id)
        target = target_for_decision(decision)
        check_application_transition(
            ApplicationStatus(application.status), target, str(application_id),
        )

        now = datetime.now(timezone.utc)
        review_fields = {
            "status": target.value,
            "reviewed_at": now,
            "reviewer_id": caller.user_id,
            "updated_at": now,
        }
        if decision is ReviewDecision.APPROVE:
            review_fields["approval_notes"] = notes
        else:
            review_fields["rejection_reason"] = notes

        performer: Performer | None = None
        async with atomic(self.db, f"{decision.value}_vetting_application"):
            await self._transition(application_id, target, review_fields)
            if decision is ReviewDecision.APPROVE:
                performer = await self._provision_performer(application)
                await self._promote_applicant(application.user_id)

        await self.db.refresh(application)
        if performer is not None:
            await self.db.refresh(performer)
        response = VettingReviewResponse(
            application=VettingApplicationResponse.model_validate(application),
            performer=(
                PerformerResponse.model_validate(performer) if performer else None
            ),
        )
        applicant_phone, stage_name = application.phone, application.stage_name

        logger.info(
            f"Vetting application {target.value}",
            extra={"application_id": application_id, "actor_id": caller.user_id},
        )
        await self.audit.record(
            actor_id=caller.user_id,
            action=AuditAction.REVIEW_VETTING_APPLICATION,
            target_table=_TABLE,
            target_id=application_id,
            metadata={
                "decision": decision.value,
                "notes": notes,
                "performer_id": response.performer.id if response.performer else None,
            },
        )
        if self.notifier:
            self.notifier.application_reviewed(applicant_phone, stage_name, decision)
        return response

    async def _transition(
        self, application_id: UUID, target: ApplicationStatus, values: dict,
    ) -> None:
        """Conditional UPDATE: applies only while the row is still in a source state."""
        result = await self.db.execute(
            update(VettingApplication)
            .where(
                VettingApplication.id == application_id,
                VettingApplication.status.in_([s.value for s in sources_for(target)]),
            )
            .values(**values)
        )
        if result.rowcount != 1:
            raise _lost_race(application_id)

    async def _provision_performer(self, application: VettingApplication) -> Performer:
        profile = derive_performer_profile(
            full_name=application.full_name,
            stage_name=application.stage_name,
            bio=application.bio,
            performance_type=application.performance_type,
            location=application.location,
        )
        performer = Performer(
            application_id=application.id,
            user_id=application.user_id,
            stage_name=profile.stage_name,
            bio=profile.bio,
            performance_types=profile.performance_types,
            service_areas=profile.service_areas,
            verified=profile.verified,
            featured=profile.featured,
        )
        self.db.add(performer)
        await self.db.flush()
        return performer

    async def _promote_applicant(self, user_id: UUID) -> None:
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(role=Role.PERFORMER.value, updated_at=datetime.now(timezone.utc))
        )
        if result.rowcount != 1:
            raise DatabaseError(f"applicant account {user_id} missing", "update")

    # ─── escalate / expire ───────────────────────────────────────

    async def escalate(
        self, caller: Caller | None, application_id: UUID, notes: str | None,
    ) -> VettingApplicationResponse:
        """pending -> needs_review."""
        caller = authorize(caller, Operation.ESCALATE_APPLICATION)
        return await self._simple_transition(
            caller, application_id, ApplicationStatus.NEEDS_REVIEW,
            AuditAction.ESCALATE_VETTING_APPLICATION,
            extra_values={"review_notes": notes} if notes else {},
        )

    async def expire(
        self, caller: Caller | None, application_id: UUID,
    ) -> VettingApplicationResponse:
        """pending | needs_review -> expired. The expiry timer lives outside the core."""
        caller = authorize(caller, Operation.EXPIRE_APPLICATION)
        return await self._simple_transition(
            caller, application_id, ApplicationStatus.EXPIRED,
            AuditAction.EXPIRE_VETTING_APPLICATION,
        )

    async def _simple_transition(
        self,
        caller: Caller,
        application_id: UUID,
        target: ApplicationStatus,
        action: AuditAction,
        extra_values: dict | None = None,
    ) -> VettingApplicationResponse:
        application = await self._get_application(application_id)
        previous = ApplicationStatus(application.status)
        check_application_transition(previous, target, str(application_id))

        async with atomic(self.db, action.value):
            await self._transition(
                application_id,
                target,
                {
                    "status": target.value,
                    "updated_at": datetime.now(timezone.utc),
                    **(extra_values or {}),
                },
            )
        await self.db.refresh(application)

        response = VettingApplicationResponse.model_validate(application)
        logger.info(
            f"Vetting application {previous.value} -> {target.value}",
            extra={"application_id": application_id, "actor_id": caller.user_id},
        )
        await self.audit.record(
            actor_id=caller.user_id,
            action=action,
            target_table=_TABLE,
            target_id=application_id,
            metadata={"from": previous.value, "to": target.value, **(extra_values or {})},
        )
        return response
