from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from intake.schemas.client import ClientBrief
from intake.utils.constants import VehicleStatus


class VehicleCreate(BaseModel):
    client_id: str
    plate: str
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None
    chassis: Optional[str] = None
    odometer: Optional[int] = None
    needs_tow: bool = False
    defect_description: Optional[str] = None


class VehicleUpdate(BaseModel):
    """Content fields only; status and timestamps belong to the status machine."""
    plate: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None
    chassis: Optional[str] = None
    odometer: Optional[int] = None
    needs_tow: Optional[bool] = None
    defect_description: Optional[str] = None


class VehicleOut(BaseModel):
    id: str
    client_id: str
    plate: str
    brand: Optional[str]
    model: Optional[str]
    year: Optional[int]
    color: Optional[str]
    chassis: Optional[str]
    odometer: Optional[int]
    status: VehicleStatus
    checkin_at: Optional[datetime]
    checkout_at: Optional[datetime]
    needs_tow: bool
    defect_description: Optional[str]
    created_by: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    client: Optional[ClientBrief] = None

    class Config:
        from_attributes = True


class VehiclePhotoOut(BaseModel):
    id: str
    vehicle_id: str
    photo_url: str
    photo_type: str
    taken_by: Optional[str]
    taken_at: datetime

    class Config:
        from_attributes = True


class VehicleDetailOut(BaseModel):
    vehicle: VehicleOut
    locked: bool
    actions: list[str]
    checkin_photos: list[VehiclePhotoOut]
    checkout_photos: list[VehiclePhotoOut]


class TransitionRequest(BaseModel):
    """photo_base64 + content_type for a photo-backed transition; manual=True for the admin override."""
    photo_base64: Optional[str] = None
    content_type: Optional[str] = None
    manual: bool = False


class PrefillRequest(BaseModel):
    plate: str
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None
    chassis: Optional[str] = None
    odometer: Optional[int] = None


class PrefillOut(PrefillRequest):
    matched_vehicle_id: Optional[str] = None


class ServiceRequestIn(BaseModel):
    plate: str
    model: Optional[str] = None
    odometer: Optional[int] = None
    cnpj: str
    defect_description: Optional[str] = None


class ServiceRequestOut(BaseModel):
    success: bool
    vehicle_id: str
    client_name: str
