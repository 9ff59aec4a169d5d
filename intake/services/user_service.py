# intake/services/user_service.py
"""
Users and roles: listing, first-admin bootstrap, admin-only account
creation and role changes.
"""

import uuid
from typing import Optional

from sqlalchemy.orm import Session

from intake.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from intake.models.auth import AuthUser
from intake.models.profile import Profile
from intake.models.user_role import UserRole
from intake.schemas.user import BootstrapRequest, RoleUpdate, UserCreate, UserRoleOut, UserWithRoleOut
from intake.services.auth_service import SessionContext, hash_password
from intake.services.query_cache import notify_mutation, query_cache
from intake.utils.constants import AppRole
from intake.utils.logger import get_logger

logger = get_logger(__name__)


def _require_admin(ctx: SessionContext, action: str):
    if not ctx.is_admin:
        logger.warning(f"[USERS] {ctx.profile.username} tried to {action} without admin role")
        raise PermissionDeniedError(f"Error: only administrators can {action}")


def list_users(db: Session) -> list[UserWithRoleOut]:
    def load():
        profiles = db.query(Profile).order_by(Profile.full_name).all()
        roles = {r.user_id: r for r in db.query(UserRole).all()}
        result = []
        for p in profiles:
            out = UserWithRoleOut.model_validate(p)
            role = roles.get(p.id)
            out.user_role = UserRoleOut.model_validate(role) if role else None
            result.append(out)
        return result

    return query_cache.get_or_load(("users",), load)


def has_any_user(db: Session) -> bool:
    return db.query(Profile.id).first() is not None


def _create_account(db: Session, email: str, password: str, full_name: str, username: str,
                    role: AppRole, flags: dict) -> Profile:
    email = (email or "").strip().lower()
    username = (username or "").strip().lower()
    if not email or not password or not (full_name or "").strip() or not username:
        raise ValidationError("Error: missing required fields: email, password, full_name, username")
    if db.query(AuthUser.id).filter(AuthUser.email == email).first():
        raise ConflictError("Error: this email is already registered")
    if db.query(Profile.id).filter(Profile.username == username).first():
        raise ConflictError("Error: this username is already taken")

    user_id = str(uuid.uuid4())
    try:
        db.add(AuthUser(id=user_id, email=email, password_hash=hash_password(password)))
        profile = Profile(id=user_id, email=email, full_name=full_name.strip(), username=username)
        db.add(profile)
        db.flush()
        db.add(UserRole(user_id=user_id, role=role, **flags))
        db.commit()
        db.refresh(profile)
    except Exception:
        db.rollback()
        raise

    notify_mutation("profiles", user_id, "insert")
    notify_mutation("user_roles", user_id, "insert", user_id=user_id)
    return profile


def bootstrap_admin(db: Session, body: BootstrapRequest) -> Profile:
    """Create the very first account as an admin. Refused once any profile exists."""
    if has_any_user(db):
        raise ConflictError("Error: admin user already exists")
    profile = _create_account(
        db, body.email, body.password, body.full_name, body.username, AppRole.ADMIN,
        {"can_view": True, "can_edit": True, "can_checkin": True, "can_checkout": True},
    )
    logger.info(f"[USERS] First admin created: {profile.email}")
    return profile


def create_user(db: Session, ctx: SessionContext, body: UserCreate) -> Profile:
    _require_admin(ctx, "create users")
    profile = _create_account(
        db, body.email, body.password, body.full_name, body.username, body.role,
        {"can_view": body.can_view, "can_edit": body.can_edit,
         "can_checkin": body.can_checkin, "can_checkout": body.can_checkout},
    )
    logger.info(f"[USERS] {ctx.profile.username} created user {profile.username} ({body.role.value})")
    return profile


def update_role(db: Session, ctx: SessionContext, user_id: str, body: RoleUpdate) -> UserRole:
    _require_admin(ctx, "change permissions")
    if not db.query(Profile.id).filter(Profile.id == user_id).first():
        raise NotFoundError("Error: user not found")

    role = db.query(UserRole).filter(UserRole.user_id == user_id).first()
    operation = "update"
    if role is None:
        role = UserRole(user_id=user_id)
        db.add(role)
        operation = "insert"
    role.role = body.role
    role.can_view = body.can_view
    role.can_edit = body.can_edit
    role.can_checkin = body.can_checkin
    role.can_checkout = body.can_checkout
    db.commit()
    db.refresh(role)

    notify_mutation("user_roles", role.id, operation, user_id=user_id)
    logger.info(f"[USERS] Role for {user_id} set to {body.role.value} by {ctx.profile.username}")
    return role


def update_profile(db: Session, ctx: SessionContext, user_id: str,
                   full_name: Optional[str] = None, username: Optional[str] = None) -> Profile:
    """Users edit their own profile; admins edit anyone's."""
    if ctx.user_id != user_id:
        _require_admin(ctx, "edit other users")
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise NotFoundError("Error: user not found")

    if full_name is not None:
        if not full_name.strip():
            raise ValidationError("Error: full name is required")
        profile.full_name = full_name.strip()
    if username is not None:
        username = username.strip().lower()
        taken = db.query(Profile.id).filter(Profile.username == username, Profile.id != user_id).first()
        if not username or taken:
            raise ConflictError("Error: this username is already taken")
        profile.username = username
    db.commit()
    db.refresh(profile)

    notify_mutation("profiles", user_id, "update")
    return profile
