"""
Unit tests for the status transition table.
"""

import pytest

from api.services.status_transitions import (
    TRANSITIONS,
    WORKING_TARGETS,
    allowed_targets,
    validate_transition,
)
from core.exceptions import ValidationError
from db import RequestStatus

ALL_STATUSES = [status.value for status in RequestStatus]


def test_every_canonical_status_has_an_entry():
    assert set(TRANSITIONS) == set(ALL_STATUSES)


@pytest.mark.parametrize("target", ALL_STATUSES + ["AWAITING_CUSTOMER"])
def test_closed_is_terminal(target):
    with pytest.raises(ValidationError, match="Closed requests cannot change status"):
        validate_transition("CLOSED", target, ["AWAITING_CUSTOMER"])


@pytest.mark.parametrize("target", [s for s in ALL_STATUSES if s not in ("COMPLETED", "CLOSED")])
def test_completed_only_moves_to_closed(target):
    with pytest.raises(ValidationError):
        validate_transition("COMPLETED", target)

    validate_transition("COMPLETED", "CLOSED")


def test_new_reaches_every_working_status():
    assert allowed_targets("NEW") == WORKING_TARGETS


@pytest.mark.parametrize("current", ["ASSIGNED", "UNDER_INSPECTION", "WAITING_PARTS", "IN_REPAIR"])
def test_working_states_exclude_themselves(current):
    targets = allowed_targets(current)

    assert current not in targets
    assert targets == WORKING_TARGETS - {current}


def test_close_is_not_reachable_from_working_states():
    with pytest.raises(ValidationError, match="Cannot change status from IN_REPAIR to CLOSED"):
        validate_transition("IN_REPAIR", "CLOSED")


def test_same_status_is_rejected():
    with pytest.raises(ValidationError, match="already WAITING_PARTS"):
        validate_transition("WAITING_PARTS", "WAITING_PARTS")


def test_new_is_never_a_target():
    with pytest.raises(ValidationError):
        validate_transition("ASSIGNED", "NEW")


def test_custom_status_is_a_target_from_working_states():
    validate_transition("IN_REPAIR", "AWAITING_CUSTOMER", ["AWAITING_CUSTOMER"])

    assert "AWAITING_CUSTOMER" not in allowed_targets("COMPLETED", ["AWAITING_CUSTOMER"])
    assert "AWAITING_CUSTOMER" not in allowed_targets("CLOSED", ["AWAITING_CUSTOMER"])


def test_inactive_custom_status_is_rejected():
    with pytest.raises(ValidationError):
        validate_transition("IN_REPAIR", "AWAITING_CUSTOMER", [])


def test_leaving_a_custom_status():
    targets = allowed_targets("AWAITING_CUSTOMER", ["AWAITING_CUSTOMER", "PARTS_ORDERED"])

    assert targets == WORKING_TARGETS | {"PARTS_ORDERED"}
