# intake/services/status_machine.py
"""
Vehicle / service-order lifecycle.

    awaiting_dropoff ──check_in──▶ checked_in ──check_out──▶ checked_out
           │                          │
           └──────────cancel──────────┴──────────▶ cancelled

checked_out and cancelled are terminal: the record is locked.
Every rule names the capability it needs and the timestamp it stamps.
Manual (photo-less) check-in / check-out is an admin-only override.
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from intake.exceptions import (
    InvalidTransitionError,
    PermissionDeniedError,
    RecordLockedError,
)
from intake.services.permissions import Capability, Permissions
from intake.utils.constants import PhotoType, TERMINAL_STATUSES, VehicleStatus


class Transition(str, enum.Enum):
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    CANCEL = "cancel"


@dataclass(frozen=True)
class TransitionRule:
    sources: frozenset
    target: VehicleStatus
    capability: str
    stamp_field: Optional[str] = None
    photo_type: Optional[PhotoType] = None


TRANSITIONS = {
    Transition.CHECK_IN: TransitionRule(
        sources=frozenset({VehicleStatus.AWAITING_DROPOFF}),
        target=VehicleStatus.CHECKED_IN,
        capability=Capability.CHECKIN,
        stamp_field="checkin_at",
        photo_type=PhotoType.CHECKIN,
    ),
    Transition.CHECK_OUT: TransitionRule(
        sources=frozenset({VehicleStatus.CHECKED_IN}),
        target=VehicleStatus.CHECKED_OUT,
        capability=Capability.CHECKOUT,
        stamp_field="checkout_at",
        photo_type=PhotoType.CHECKOUT,
    ),
    # is_admin OR can_edit; admin already folds into can_edit
    Transition.CANCEL: TransitionRule(
        sources=frozenset({VehicleStatus.AWAITING_DROPOFF, VehicleStatus.CHECKED_IN}),
        target=VehicleStatus.CANCELLED,
        capability=Capability.EDIT,
    ),
}

TRANSITION_FOR_PHOTO = {
    PhotoType.CHECKIN: Transition.CHECK_IN,
    PhotoType.CHECKOUT: Transition.CHECK_OUT,
}


def is_locked(status) -> bool:
    return VehicleStatus(status) in TERMINAL_STATUSES


def require_capability(permissions: Permissions, capability: str, action: str):
    if not permissions.has(capability):
        raise PermissionDeniedError(f"Error: not allowed to {action}")


def require_unlocked(status, what: str = "record"):
    if is_locked(status):
        raise RecordLockedError(f"Error: {what} is {VehicleStatus(status).value} and can no longer be changed")


def check_transition(status, transition: Transition, permissions: Permissions,
                     manual: bool = False) -> TransitionRule:
    """
    Validate one transition against the current status and the caller's permissions.
    Returns the rule to apply; raises instead of returning False.
    """
    transition = Transition(transition)
    rule = TRANSITIONS[transition]
    status = VehicleStatus(status)

    require_unlocked(status)
    require_capability(permissions, rule.capability, transition.value.replace("_", "-"))
    if manual and rule.photo_type is not None and not permissions.is_admin:
        raise PermissionDeniedError(f"Error: only administrators can {transition.value.replace('_', '-')} without a photo")
    if status not in rule.sources:
        raise InvalidTransitionError(
            f"Error: cannot {transition.value.replace('_', '-')} a vehicle that is {status.value}"
        )
    return rule


def transition_values(rule: TransitionRule, now: Optional[datetime] = None) -> dict:
    """Column values a transition writes: the new status plus its timestamp, if any."""
    values = {"status": rule.target}
    if rule.stamp_field:
        values[rule.stamp_field] = now or datetime.utcnow()
    return values


def available_transitions(status, permissions: Permissions) -> list[str]:
    """Actions a view may offer for a record. Empty once the record is locked."""
    status = VehicleStatus(status)
    if status in TERMINAL_STATUSES:
        return []
    actions = []
    for transition, rule in TRANSITIONS.items():
        if status not in rule.sources or not permissions.has(rule.capability):
            continue
        actions.append(transition.value)
        if rule.photo_type is not None and permissions.is_admin:
            actions.append(f"manual_{transition.value}")
    return actions
