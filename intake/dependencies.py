# intake/dependencies.py
"""
FastAPI dependencies shared by the routers.

The bearer token comes from the Authorization header; browsers' EventSource
cannot set headers, so the event streams also accept ?token=.
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from intake.database import get_db
from intake.exceptions import PermissionDeniedError
from intake.services.auth_service import SessionContext, resolve_session


def bearer_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("Authorization") or ""
    if authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    return request.query_params.get("token")


def get_session(request: Request, db: Session = Depends(get_db)) -> SessionContext:
    return resolve_session(db, bearer_token(request))


def require_admin(ctx: SessionContext = Depends(get_session)) -> SessionContext:
    if not ctx.is_admin:
        raise PermissionDeniedError("Error: admin only")
    return ctx
