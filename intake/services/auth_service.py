# intake/services/auth_service.py
"""
Sign-in, sign-out, token refresh, and per-request session resolution.

The login form collects a username; get_email_for_login() maps it to the
identity's email before the password check. Every request resolves an
explicit SessionContext that is passed to the services; there is no
process-wide "current user".
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from intake.config import settings
from intake.exceptions import NotAuthenticatedError
from intake.models.auth import AuthSession, AuthUser
from intake.models.profile import Profile
from intake.models.user_role import UserRole
from intake.services.permissions import Permissions, permissions_for
from intake.utils.logger import get_logger

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Error: invalid username or password"

# Checked against when the username is unknown so both failures cost one hash
_DUMMY_HASH = generate_password_hash(secrets.token_hex(16))


@dataclass(frozen=True)
class SessionContext:
    user_id: str
    profile: Profile
    permissions: Permissions
    token: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.permissions.is_admin


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def check_password(password: str, hashed: str) -> bool:
    try:
        return check_password_hash(hashed, password)
    except ValueError:
        return False


def get_email_for_login(db: Session, username: str) -> Optional[str]:
    """Username -> login email. Usernames are matched lower-case and trimmed."""
    key = (username or "").strip().lower()
    if not key:
        return None
    profile = db.query(Profile).filter(Profile.username == key).first()
    return profile.email if profile else None


def _new_session(db: Session, user_id: str) -> AuthSession:
    now = datetime.utcnow()
    session = AuthSession(
        token=secrets.token_urlsafe(32),
        user_id=user_id,
        created_at=now,
        expires_at=now + timedelta(hours=settings.SESSION_TTL_HOURS),
    )
    db.add(session)
    return session


def sign_in(db: Session, username: str, password: str) -> AuthSession:
    email = get_email_for_login(db, username)
    user = db.query(AuthUser).filter(AuthUser.email == email).first() if email else None
    if user is None:
        check_password(password, _DUMMY_HASH)
        logger.warning(f"[AUTH] Unknown username '{username}'")
        raise NotAuthenticatedError(INVALID_CREDENTIALS)

    if not check_password(password, user.password_hash):
        logger.warning(f"[AUTH] Failed sign-in for '{username}'")
        raise NotAuthenticatedError(INVALID_CREDENTIALS)

    session = _new_session(db, user.id)
    db.commit()
    logger.info(f"[AUTH] Signed in {username}")
    return session


def sign_out(db: Session, token: str):
    deleted = db.query(AuthSession).filter(AuthSession.token == token).delete()
    db.commit()
    if deleted:
        logger.info("[AUTH] Signed out")


def refresh(db: Session, token: str) -> AuthSession:
    """Rotate a live token: the old one stops working, the new one gets a fresh TTL."""
    current = _live_session(db, token)
    session = _new_session(db, current.user_id)
    db.delete(current)
    db.commit()
    return session


def _live_session(db: Session, token: Optional[str]) -> AuthSession:
    if not token:
        raise NotAuthenticatedError("Error: missing token")
    session = db.query(AuthSession).filter(AuthSession.token == token).first()
    if not session:
        raise NotAuthenticatedError("Error: invalid token")
    if session.expires_at < datetime.utcnow():
        db.delete(session)
        db.commit()
        raise NotAuthenticatedError("Error: session expired")
    return session


def load_context(db: Session, user_id: str, token: Optional[str] = None) -> SessionContext:
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise NotAuthenticatedError("Error: no profile for this account")
    role = db.query(UserRole).filter(UserRole.user_id == user_id).first()
    return SessionContext(user_id=user_id, profile=profile, permissions=permissions_for(role), token=token)


def resolve_session(db: Session, token: Optional[str]) -> SessionContext:
    session = _live_session(db, token)
    return load_context(db, session.user_id, token)
