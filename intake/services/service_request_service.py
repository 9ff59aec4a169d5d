# intake/services/service_request_service.py
"""
Service-request intake: a request already reduced to
{plate, model, odometer, cnpj, defect_description} becomes a new vehicle
awaiting drop-off for the client that owns the CNPJ.
"""

from sqlalchemy.orm import Session

from intake.exceptions import NotFoundError, ValidationError
from intake.schemas.vehicle import ServiceRequestIn, ServiceRequestOut, VehicleCreate
from intake.services.auth_service import SessionContext
from intake.services.client_service import find_by_tax_id
from intake.services.vehicle_service import create_vehicle
from intake.utils.logger import get_logger
from intake.utils.normalize import digits_only

logger = get_logger(__name__)


def process_service_request(db: Session, ctx: SessionContext, body: ServiceRequestIn) -> ServiceRequestOut:
    cnpj = digits_only(body.cnpj)
    if not cnpj:
        raise ValidationError("Error: cnpj required")

    client = find_by_tax_id(db, cnpj)
    if not client:
        logger.warning(f"[REQUESTS] No client for CNPJ {cnpj}")
        raise NotFoundError("Cliente não encontrado", cnpj=cnpj)

    vehicle = create_vehicle(db, ctx, VehicleCreate(
        client_id=client.id,
        plate=body.plate,
        model=body.model,
        odometer=body.odometer,
        defect_description=body.defect_description,
        needs_tow=False,
    ))
    logger.info(f"[REQUESTS] Vehicle {vehicle.plate} opened for {client.name}")
    return ServiceRequestOut(success=True, vehicle_id=vehicle.id, client_name=client.name)
