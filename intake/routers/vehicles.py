# intake/routers/vehicles.py
"""
Vehicles: registration, content edits, plate lookup, prefill, photos,
and the check-in / check-out / cancel transitions.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from intake.database import get_db
from intake.dependencies import get_session
from intake.schemas.vehicle import (
    PrefillOut,
    PrefillRequest,
    TransitionRequest,
    VehicleCreate,
    VehicleDetailOut,
    VehicleOut,
    VehiclePhotoOut,
    VehicleUpdate,
)
from intake.services import vehicle_service
from intake.services.auth_service import SessionContext
from intake.utils.constants import PhotoType, VehicleStatus

router = APIRouter()


@router.get("/vehicles", response_model=list[VehicleOut])
def list_vehicles(
    client_id: Optional[str] = None,
    status: Optional[VehicleStatus] = None,
    search: Optional[str] = None,
    created_by: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session),
):
    """Newest first. Filter by client, status, creator, or plate/model text."""
    return vehicle_service.list_vehicles(db, client_id, status, search, created_by)


@router.post("/vehicles", response_model=VehicleOut, status_code=201)
def create_vehicle(body: VehicleCreate, db: Session = Depends(get_db), ctx: SessionContext = Depends(get_session)):
    return vehicle_service.create_vehicle(db, ctx, body)


@router.post("/vehicles/prefill", response_model=PrefillOut, summary="Fill a form from the last visit of a plate")
def prefill(body: PrefillRequest, db: Session = Depends(get_db), ctx: SessionContext = Depends(get_session)):
    return vehicle_service.prefill(db, body)


@router.get("/vehicles/plate/{plate}", response_model=list[VehicleOut])
def lookup_by_plate(plate: str, db: Session = Depends(get_db), ctx: SessionContext = Depends(get_session)):
    """All visits of a plate. Accepts any formatting: 'abc-1d23' finds ABC1D23."""
    return vehicle_service.lookup_by_plate(db, plate)


@router.get("/vehicles/{vehicle_id}", response_model=VehicleDetailOut)
def get_vehicle(vehicle_id: str, db: Session = Depends(get_db), ctx: SessionContext = Depends(get_session)):
    return vehicle_service.get_vehicle_detail(db, ctx, vehicle_id)


@router.put("/vehicles/{vehicle_id}", response_model=VehicleOut)
def update_vehicle(vehicle_id: str, body: VehicleUpdate, db: Session = Depends(get_db),
                   ctx: SessionContext = Depends(get_session)):
    return vehicle_service.update_vehicle(db, ctx, vehicle_id, body)


@router.get("/vehicles/{vehicle_id}/photos", response_model=list[VehiclePhotoOut])
def list_photos(vehicle_id: str, photo_type: Optional[PhotoType] = None, db: Session = Depends(get_db),
                ctx: SessionContext = Depends(get_session)):
    return vehicle_service.list_photos(db, vehicle_id, photo_type)


@router.post("/vehicles/{vehicle_id}/check-in", response_model=VehicleOut)
def check_in(vehicle_id: str, body: TransitionRequest, db: Session = Depends(get_db),
             ctx: SessionContext = Depends(get_session)):
    """Photo-backed check-in; `manual: true` without a photo is admin-only."""
    return vehicle_service.check_in(db, ctx, vehicle_id, body)


@router.post("/vehicles/{vehicle_id}/check-out", response_model=VehicleOut)
def check_out(vehicle_id: str, body: TransitionRequest, db: Session = Depends(get_db),
              ctx: SessionContext = Depends(get_session)):
    return vehicle_service.check_out(db, ctx, vehicle_id, body)


@router.post("/vehicles/{vehicle_id}/cancel", response_model=VehicleOut)
def cancel(vehicle_id: str, db: Session = Depends(get_db), ctx: SessionContext = Depends(get_session)):
    return vehicle_service.cancel(db, ctx, vehicle_id)
