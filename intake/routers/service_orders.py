# intake/routers/service_orders.py
"""
Mirror of the external service-order system.

One POST endpoint, dispatched on `action`. Errors use the
{error, details} body the order screens expect instead of {detail}.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from intake.database import get_db
from intake.dependencies import bearer_token
from intake.exceptions import (
    ExternalServiceError,
    IntakeError,
    InvalidTransitionError,
    StorageError,
)
from intake.schemas.service_order import ServiceOrderRequest
from intake.services.auth_service import resolve_session
from intake.services.service_order_gateway import get_gateway, handle_request
from intake.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def error_status(exc: IntakeError) -> int:
    """Illegal transitions are client errors here; foreign failures are 500."""
    if isinstance(exc, (ExternalServiceError, StorageError)):
        return 500
    if isinstance(exc, InvalidTransitionError):
        return 400
    return exc.status_code


def error_body(exc: IntakeError) -> dict:
    body = {"error": exc.message}
    if exc.details:
        body["details"] = exc.details
    return body


@router.post("/service-orders", summary="Query or update orders in the service-order system")
async def service_orders(body: ServiceOrderRequest, request: Request, db: Session = Depends(get_db)):
    try:
        ctx = resolve_session(db, bearer_token(request))
        result = await handle_request(get_gateway(), ctx, body)
    except IntakeError as e:
        status = error_status(e)
        if status >= 500:
            logger.error(f"[ORDERS] {body.action or 'query'} failed: {e.message} {e.details}")
        return JSONResponse(status_code=status, content=error_body(e))
    return result
