"""Vetting Transitions: application state machine, age rule, profile derivation.

Tests:
    - Reviewable states reach approved/rejected/expired; terminals reach nothing
    - needs_review only from pending
    - age_on counts completed years around the birthday
    - derive_performer_profile fallbacks for missing stage name and bio
"""

from datetime import date

import pytest

from app.core.domain_types import ApplicationStatus, ReviewDecision
from app.core.errors import InvalidStateError
from app.core.vetting_rules import (
    REVIEWABLE,
    age_on,
    check_application_transition,
    derive_performer_profile,
    sources_for,
    target_for_decision,
)

TERMINAL = [ApplicationStatus.APPROVED, ApplicationStatus.REJECTED, ApplicationStatus.EXPIRED]


def test_decisions_map_to_targets():
    assert target_for_decision(ReviewDecision.APPROVE) is ApplicationStatus.APPROVED
    assert target_for_decision(ReviewDecision.REJECT) is ApplicationStatus.REJECTED


@pytest.mark.parametrize("current", sorted(REVIEWABLE, key=lambda s: s.value))
@pytest.mark.parametrize("target", TERMINAL)
def test_reviewable_states_reach_terminals(current, target):
    check_application_transition(current, target, "a-1")


@pytest.mark.parametrize("current", TERMINAL)
@pytest.mark.parametrize("target", list(ApplicationStatus))
def test_terminal_states_reach_nothing(current, target):
    with pytest.raises(InvalidStateError):
        check_application_transition(current, target, "a-1")


def test_escalation_only_from_pending():
    check_application_transition(
        ApplicationStatus.PENDING, ApplicationStatus.NEEDS_REVIEW, "a-1",
    )
    with pytest.raises(InvalidStateError):
        check_application_transition(
            ApplicationStatus.NEEDS_REVIEW, ApplicationStatus.NEEDS_REVIEW, "a-1",
        )


def test_approval_sources_are_the_reviewable_states():
    assert sources_for(ApplicationStatus.APPROVED) == REVIEWABLE
    assert sources_for(ApplicationStatus.NEEDS_REVIEW) == {ApplicationStatus.PENDING}


@pytest.mark.parametrize("today, expected", [
    (date(2026, 6, 14), 17),   # day before 18th birthday
    (date(2026, 6, 15), 18),   # birthday
    (date(2027, 1, 1), 18),
])
def test_age_on(today, expected):
    assert age_on(date(2008, 6, 15), today) == expected


def test_profile_uses_application_fields():
    profile = derive_performer_profile(
        full_name="Jordan Lee",
        stage_name="  DJ Jolt ",
        bio="Open-format DJ for weddings and corporate events.",
        performance_type="dj",
        location="Sydney",
    )
    assert profile.stage_name == "DJ Jolt"
    assert profile.performance_types == ["dj"]
    assert profile.service_areas == ["Sydney"]
    assert profile.verified is True
    assert profile.featured is False


def test_profile_fallbacks():
    profile = derive_performer_profile(
        full_name="Jordan Lee", stage_name=None, bio="",
        performance_type="magician", location="Perth",
    )
    assert profile.stage_name == "Jordan Lee"
    assert profile.bio == "Professional magician performer from Perth"
