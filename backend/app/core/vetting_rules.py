"""Vetting Transitions: application state machine and performer profile derivation.

Invariants:
    - pending -> needs_review | approved | rejected
    - needs_review -> approved | rejected
    - pending | needs_review -> expired (timer lives outside the core)
    - approved, rejected, expired are terminal
    - derive_performer_profile is PURE: same application fields -> same profile

Design Decisions:
    - REVIEWABLE is exported: services use it verbatim in the conditional UPDATE,
      so the pre-check and the atomic re-check can never drift apart
"""

from dataclasses import dataclass, field
from datetime import date

from app.core.domain_types import ApplicationStatus, ReviewDecision
from app.core.errors import ErrorContext, InvalidStateError

REVIEWABLE: frozenset[ApplicationStatus] = frozenset({
    ApplicationStatus.PENDING, ApplicationStatus.NEEDS_REVIEW,
})

APPLICATION_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.PENDING: frozenset({
        ApplicationStatus.NEEDS_REVIEW,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.EXPIRED,
    }),
    ApplicationStatus.NEEDS_REVIEW: frozenset({
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.EXPIRED,
    }),
    ApplicationStatus.APPROVED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.EXPIRED: frozenset(),
}

MINIMUM_APPLICANT_AGE = 18


def target_for_decision(decision: ReviewDecision) -> ApplicationStatus:
    if decision is ReviewDecision.APPROVE:
        return ApplicationStatus.APPROVED
    return ApplicationStatus.REJECTED


def sources_for(target: ApplicationStatus) -> frozenset[ApplicationStatus]:
    """All application states from which `target` is reachable."""
    return frozenset(
        source for source, targets in APPLICATION_TRANSITIONS.items()
        if target in targets
    )


def check_application_transition(
    current: ApplicationStatus, target: ApplicationStatus, application_id: str,
) -> None:
    if target not in APPLICATION_TRANSITIONS[current]:
        raise InvalidStateError(
            f"Application is {current.value}; cannot move to {target.value}",
            current_state=current.value,
            context=ErrorContext(
                target_table="vetting_applications", target_id=application_id,
            ),
        )


def age_on(date_of_birth: date, today: date) -> int:
    """Completed years between date_of_birth and today."""
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


@dataclass(frozen=True)
class PerformerProfile:
    """Fields of the performers row created on approval."""
    stage_name: str
    bio: str
    performance_types: list[str] = field(default_factory=list)
    service_areas: list[str] = field(default_factory=list)
    verified: bool = True
    featured: bool = False


def derive_performer_profile(
    *,
    full_name: str,
    stage_name: str | None,
    bio: str | None,
    performance_type: str,
    location: str,
) -> PerformerProfile:
    """Build the verified performer profile an approved application provisions."""
    name = (stage_name or "").strip() or full_name.strip()
    text = (bio or "").strip() or (
        f"Professional {performance_type} performer from {location}"
    )
    return PerformerProfile(
        stage_name=name,
        bio=text,
        performance_types=[performance_type],
        service_areas=[location],
    )
