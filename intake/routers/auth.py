# intake/routers/auth.py
"""Sign-in, sign-out, token refresh and first-admin bootstrap."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from intake.database import get_db
from intake.dependencies import bearer_token, get_session
from intake.exceptions import NotAuthenticatedError
from intake.schemas.user import BootstrapRequest, LoginRequest, MeOut, ProfileOut, TokenOut
from intake.services import auth_service, user_service
from intake.services.auth_service import SessionContext

router = APIRouter()


@router.get("/auth/bootstrap", summary="Does any user exist yet?")
def bootstrap_status(db: Session = Depends(get_db)):
    return {"exists": user_service.has_any_user(db)}


@router.post("/auth/bootstrap", response_model=ProfileOut, status_code=201)
def bootstrap(body: BootstrapRequest, db: Session = Depends(get_db)):
    """Create the first admin. Refused with 409 once any user exists."""
    return user_service.bootstrap_admin(db, body)


@router.post("/auth/login", response_model=TokenOut)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    session = auth_service.sign_in(db, body.username, body.password)
    return TokenOut(token=session.token, expires_at=session.expires_at, user_id=session.user_id)


@router.post("/auth/logout")
def logout(request: Request, db: Session = Depends(get_db)):
    token = bearer_token(request)
    if not token:
        raise NotAuthenticatedError("Error: missing token")
    auth_service.sign_out(db, token)
    return {"status": "signed_out"}


@router.post("/auth/refresh", response_model=TokenOut)
def refresh(request: Request, db: Session = Depends(get_db)):
    session = auth_service.refresh(db, bearer_token(request))
    return TokenOut(token=session.token, expires_at=session.expires_at, user_id=session.user_id)


@router.get("/auth/me", response_model=MeOut)
def me(ctx: SessionContext = Depends(get_session)):
    """Profile plus effective capabilities, for deciding which actions to show."""
    return MeOut(profile=ProfileOut.model_validate(ctx.profile), permissions=ctx.permissions.as_dict())
