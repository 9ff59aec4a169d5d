# intake/routers/service_requests.py
"""Service-request intake: open a vehicle for the client owning a CNPJ."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from intake.database import get_db
from intake.dependencies import get_session
from intake.schemas.vehicle import ServiceRequestIn, ServiceRequestOut
from intake.services.auth_service import SessionContext
from intake.services.service_request_service import process_service_request

router = APIRouter()


@router.post("/service-requests", response_model=ServiceRequestOut, status_code=201)
def create_service_request(body: ServiceRequestIn, db: Session = Depends(get_db),
                           ctx: SessionContext = Depends(get_session)):
    """404 with the CNPJ digits when no client owns it."""
    return process_service_request(db, ctx, body)
