"""
Status transition table for service requests.

TRANSITIONS lists the canonical targets reachable from each canonical
status. Custom statuses behave like working states: they can be entered from
any working state and left for any working target.
"""

from typing import Dict, FrozenSet, Iterable

from core.exceptions import ValidationError
from db import RequestStatus

WORKING_TARGETS: FrozenSet[str] = frozenset({
    RequestStatus.ASSIGNED.value,
    RequestStatus.UNDER_INSPECTION.value,
    RequestStatus.WAITING_PARTS.value,
    RequestStatus.IN_REPAIR.value,
    RequestStatus.COMPLETED.value,
})

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    RequestStatus.NEW.value: WORKING_TARGETS,
    RequestStatus.ASSIGNED.value: WORKING_TARGETS - {RequestStatus.ASSIGNED.value},
    RequestStatus.UNDER_INSPECTION.value: WORKING_TARGETS - {RequestStatus.UNDER_INSPECTION.value},
    RequestStatus.WAITING_PARTS.value: WORKING_TARGETS - {RequestStatus.WAITING_PARTS.value},
    RequestStatus.IN_REPAIR.value: WORKING_TARGETS - {RequestStatus.IN_REPAIR.value},
    RequestStatus.COMPLETED.value: frozenset({RequestStatus.CLOSED.value}),
    RequestStatus.CLOSED.value: frozenset(),
}


def allowed_targets(current: str, custom_statuses: Iterable[str] = ()) -> FrozenSet[str]:
    """Statuses reachable from ``current`` given the active custom status names."""
    custom = frozenset(custom_statuses)
    if current in TRANSITIONS:
        targets = TRANSITIONS[current]
        if targets and current not in (RequestStatus.COMPLETED.value, RequestStatus.CLOSED.value):
            targets = targets | custom
    else:
        # unknown names are custom statuses
        targets = WORKING_TARGETS | custom
    return frozenset(targets - {current})


def validate_transition(current: str, target: str, custom_statuses: Iterable[str] = ()) -> None:
    """Raise ValidationError unless ``current -> target`` is in the table."""
    if current == RequestStatus.CLOSED.value:
        raise ValidationError("Closed requests cannot change status")
    if target == current:
        raise ValidationError(f"Request is already {current}")
    if current == RequestStatus.COMPLETED.value and target != RequestStatus.CLOSED.value:
        raise ValidationError("A completed request can only be closed")
    if target not in allowed_targets(current, custom_statuses):
        raise ValidationError(f"Cannot change status from {current} to {target}")
