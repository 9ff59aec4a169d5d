# intake/routers/users.py
"""Users and roles. Creating users and changing roles is admin-only."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from intake.database import get_db
from intake.dependencies import get_session, require_admin
from intake.schemas.user import ProfileOut, ProfileUpdate, RoleUpdate, UserCreate, UserRoleOut, UserWithRoleOut
from intake.services import user_service
from intake.services.auth_service import SessionContext

router = APIRouter()


@router.get("/users", response_model=list[UserWithRoleOut])
def list_users(db: Session = Depends(get_db), ctx: SessionContext = Depends(require_admin)):
    return user_service.list_users(db)


@router.post("/users", response_model=ProfileOut, status_code=201)
def create_user(body: UserCreate, db: Session = Depends(get_db), ctx: SessionContext = Depends(get_session)):
    """Identity, profile and role in one transaction. Role defaults to viewer."""
    return user_service.create_user(db, ctx, body)


@router.put("/users/{user_id}/role", response_model=UserRoleOut)
def update_role(user_id: str, body: RoleUpdate, db: Session = Depends(get_db),
                ctx: SessionContext = Depends(get_session)):
    return user_service.update_role(db, ctx, user_id, body)


@router.put("/users/{user_id}/profile", response_model=ProfileOut)
def update_profile(user_id: str, body: ProfileUpdate, db: Session = Depends(get_db),
                   ctx: SessionContext = Depends(get_session)):
    return user_service.update_profile(db, ctx, user_id, body.full_name, body.username)
