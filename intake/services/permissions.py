# intake/services/permissions.py
"""
Permission model: role + capability flags -> effective capabilities.

The same CAPABILITY_FLAGS table drives both the pure derivation used by the
services and the SQL predicates (user_can_edit / user_can_checkin /
user_can_checkout) evaluated in the database, so the two cannot diverge.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import or_, select, true
from sqlalchemy.orm import Session

from intake.models.user_role import UserRole
from intake.utils.constants import AppRole


class Capability:
    EDIT = "edit"
    CHECKIN = "checkin"
    CHECKOUT = "checkout"


# capability -> stored flag column
CAPABILITY_FLAGS = {
    Capability.EDIT: "can_edit",
    Capability.CHECKIN: "can_checkin",
    Capability.CHECKOUT: "can_checkout",
}


@dataclass(frozen=True)
class Permissions:
    role: AppRole = AppRole.VIEWER
    can_edit: bool = False
    can_checkin: bool = False
    can_checkout: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == AppRole.ADMIN

    def has(self, capability: str) -> bool:
        return getattr(self, CAPABILITY_FLAGS[capability])

    def as_dict(self) -> dict:
        return {
            "role": self.role.value,
            "is_admin": self.is_admin,
            "can_edit": self.can_edit,
            "can_checkin": self.can_checkin,
            "can_checkout": self.can_checkout,
        }


NO_PERMISSIONS = Permissions()


def _coerce_role(role) -> AppRole:
    if isinstance(role, AppRole):
        return role
    try:
        return AppRole(role)
    except ValueError:
        return AppRole.VIEWER


def derive_permissions(role=None, can_edit=None, can_checkin=None, can_checkout=None) -> Permissions:
    """
    Fold the admin override into the stored flags.
    Unknown role or missing flags fall back to the least-privileged values.
    """
    role = _coerce_role(role)
    is_admin = role == AppRole.ADMIN
    return Permissions(
        role=role,
        can_edit=is_admin or bool(can_edit),
        can_checkin=is_admin or bool(can_checkin),
        can_checkout=is_admin or bool(can_checkout),
    )


def permissions_for(user_role: Optional[UserRole]) -> Permissions:
    if user_role is None:
        return NO_PERMISSIONS
    return derive_permissions(
        user_role.role, user_role.can_edit, user_role.can_checkin, user_role.can_checkout
    )


def capability_clause(capability: str):
    """SQL form of the derivation: role = 'admin' OR <flag> IS TRUE."""
    flag = getattr(UserRole, CAPABILITY_FLAGS[capability])
    return or_(UserRole.role == AppRole.ADMIN, flag == true())


def user_can(db: Session, user_id: str, capability: str) -> bool:
    stmt = select(UserRole.id).where(UserRole.user_id == user_id, capability_clause(capability))
    return db.execute(stmt).first() is not None


def user_can_edit(db: Session, user_id: str) -> bool:
    return user_can(db, user_id, Capability.EDIT)


def user_can_checkin(db: Session, user_id: str) -> bool:
    return user_can(db, user_id, Capability.CHECKIN)


def user_can_checkout(db: Session, user_id: str) -> bool:
    return user_can(db, user_id, Capability.CHECKOUT)
