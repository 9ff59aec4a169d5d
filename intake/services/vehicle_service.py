# intake/services/vehicle_service.py
"""
Vehicles: content CRUD, plate lookups, duplicate-plate prefill, and the
check-in / check-out / cancel transitions.

Transition flow for one vehicle:
  1. claim the vehicle in the in-flight registry (second submit -> 409)
  2. check_transition(): lock, capability, admin-only manual path, source state
  3. store the photo (photo-backed transitions only)
  4. conditional UPDATE ... WHERE status = <status we validated against>
  5. insert the photo row, commit, notify_mutation()
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from intake.exceptions import InvalidTransitionError, NotFoundError, RecordLockedError, ValidationError
from intake.models.client import Client
from intake.models.vehicle import Vehicle
from intake.models.vehicle_photo import VehiclePhoto
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
from intake.services.auth_service import SessionContext
from intake.services.inflight import inflight
from intake.services.permissions import Capability
from intake.services.photo_storage import PhotoStorage, decode_photo, get_photo_storage
from intake.services.query_cache import notify_mutation, query_cache
from intake.services.status_machine import (
    Transition,
    available_transitions,
    check_transition,
    is_locked,
    require_capability,
    require_unlocked,
    transition_values,
)
from intake.utils.constants import PhotoType, TERMINAL_STATUSES, VehicleStatus
from intake.utils.logger import get_logger
from intake.utils.normalize import is_valid_plate, normalize_plate

logger = get_logger(__name__)

PREFILL_FIELDS = ("brand", "model", "year", "color", "chassis", "odometer")


def _clean_plate(value: Optional[str]) -> str:
    plate = normalize_plate(value)
    if not is_valid_plate(plate):
        raise ValidationError(f"Error: invalid plate '{value}'. Plates have 7 letters or digits")
    return plate


def _load(db: Session, vehicle_id: str) -> Vehicle:
    vehicle = db.query(Vehicle).filter(Vehicle.id == vehicle_id).first()
    if not vehicle:
        raise NotFoundError("Error: vehicle not found")
    return vehicle


# ── Content ──────────────────────────────────────────────────────────────────

def create_vehicle(db: Session, ctx: SessionContext, body: VehicleCreate) -> Vehicle:
    require_capability(ctx.permissions, Capability.EDIT, "register vehicles")
    plate = _clean_plate(body.plate)
    if not db.query(Client.id).filter(Client.id == body.client_id).first():
        raise ValidationError("Error: client not found")

    values = body.model_dump()
    values["plate"] = plate
    vehicle = Vehicle(**values, status=VehicleStatus.AWAITING_DROPOFF, created_by=ctx.user_id)
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)

    notify_mutation("vehicles", vehicle.id, "insert", client_id=vehicle.client_id)
    logger.info(f"[VEHICLES] Registered {plate} for client {vehicle.client_id} by {ctx.profile.username}")
    return vehicle


def update_vehicle(db: Session, ctx: SessionContext, vehicle_id: str, body: VehicleUpdate) -> Vehicle:
    values = body.model_dump(exclude_unset=True)
    if "plate" in values:
        values["plate"] = _clean_plate(values["plate"])
    if values.get("needs_tow") is None:
        values.pop("needs_tow", None)

    with inflight.claim("vehicle", vehicle_id):
        require_unlocked(_load(db, vehicle_id).status, "vehicle")
        require_capability(ctx.permissions, Capability.EDIT, "edit vehicles")
        values["updated_at"] = datetime.utcnow()
        updated = (
            db.query(Vehicle)
            .filter(Vehicle.id == vehicle_id, Vehicle.status.notin_(list(TERMINAL_STATUSES)))
            .update(values, synchronize_session=False)
        )
        if not updated:
            db.rollback()
            raise RecordLockedError("Error: vehicle was closed while being edited and can no longer be changed")
        db.commit()
        vehicle = _load(db, vehicle_id)
        db.refresh(vehicle)

    notify_mutation("vehicles", vehicle.id, "update", client_id=vehicle.client_id)
    logger.info(f"[VEHICLES] Updated {vehicle.plate} ({vehicle.id}) by {ctx.profile.username}")
    return vehicle


def get_vehicle(db: Session, vehicle_id: str) -> VehicleOut:
    return query_cache.get_or_load(
        ("vehicle", vehicle_id), lambda: VehicleOut.model_validate(_load(db, vehicle_id))
    )


def list_vehicles(db: Session, client_id: Optional[str] = None, status: Optional[VehicleStatus] = None,
                  search: Optional[str] = None, created_by: Optional[str] = None) -> list[VehicleOut]:
    """Newest first. `search` matches a plate or model substring."""
    term = (search or "").strip()
    status = VehicleStatus(status) if status else None

    def load():
        query = db.query(Vehicle)
        if client_id:
            query = query.filter(Vehicle.client_id == client_id)
        if status:
            query = query.filter(Vehicle.status == status)
        if created_by:
            query = query.filter(Vehicle.created_by == created_by)
        if term:
            conditions = [Vehicle.model.ilike(f"%{term}%")]
            plate = normalize_plate(term)
            if plate:
                conditions.append(Vehicle.plate.contains(plate))
            query = query.filter(or_(*conditions))
        rows = query.order_by(Vehicle.created_at.desc()).all()
        return [VehicleOut.model_validate(v) for v in rows]

    key = ("vehicles", client_id, status.value if status else None, term.lower(), created_by)
    return query_cache.get_or_load(key, load)


def lookup_by_plate(db: Session, plate: str) -> list[VehicleOut]:
    """Every visit of a plate, newest first. The lookup key is normalised first."""
    plate = _clean_plate(plate)

    def load():
        rows = (
            db.query(Vehicle)
            .filter(Vehicle.plate == plate)
            .order_by(Vehicle.created_at.desc())
            .all()
        )
        return [VehicleOut.model_validate(v) for v in rows]

    return query_cache.get_or_load(("vehicle-plate", plate), load)


def prefill(db: Session, body: PrefillRequest) -> PrefillOut:
    """
    Fill the empty fields of a new-vehicle form from the most recent visit of
    the same plate, whatever its status. Values the user already typed win.
    """
    result = PrefillOut(**body.model_dump())
    result.plate = normalize_plate(body.plate)
    if not is_valid_plate(result.plate):
        return result
    previous = lookup_by_plate(db, result.plate)
    if not previous:
        return result

    latest = previous[0]
    for field in PREFILL_FIELDS:
        typed = getattr(result, field)
        if (typed is None or typed == "") and getattr(latest, field) not in (None, ""):
            setattr(result, field, getattr(latest, field))
    result.matched_vehicle_id = latest.id
    return result


def list_photos(db: Session, vehicle_id: str, photo_type: Optional[PhotoType] = None) -> list[VehiclePhotoOut]:
    photo_type = PhotoType(photo_type) if photo_type else None

    def load():
        query = db.query(VehiclePhoto).filter(VehiclePhoto.vehicle_id == vehicle_id)
        if photo_type:
            query = query.filter(VehiclePhoto.photo_type == photo_type.value)
        return [VehiclePhotoOut.model_validate(p) for p in query.order_by(VehiclePhoto.taken_at).all()]

    key = ("vehicle-photos", vehicle_id, photo_type.value if photo_type else None)
    return query_cache.get_or_load(key, load)


def get_vehicle_detail(db: Session, ctx: SessionContext, vehicle_id: str) -> VehicleDetailOut:
    vehicle = get_vehicle(db, vehicle_id)
    return VehicleDetailOut(
        vehicle=vehicle,
        locked=is_locked(vehicle.status),
        actions=available_transitions(vehicle.status, ctx.permissions),
        checkin_photos=list_photos(db, vehicle_id, PhotoType.CHECKIN),
        checkout_photos=list_photos(db, vehicle_id, PhotoType.CHECKOUT),
    )


# ── Transitions ──────────────────────────────────────────────────────────────

def apply_transition(db: Session, ctx: SessionContext, vehicle_id: str, transition: Transition,
                     request: Optional[TransitionRequest] = None,
                     storage: Optional[PhotoStorage] = None) -> Vehicle:
    request = request or TransitionRequest()
    transition = Transition(transition)

    with inflight.claim("vehicle", vehicle_id):
        vehicle = _load(db, vehicle_id)
        expected = VehicleStatus(vehicle.status)
        rule = check_transition(expected, transition, ctx.permissions, manual=request.manual)

        stored = None
        if rule.photo_type is not None and not request.manual:
            data, ext = decode_photo(request.photo_base64, request.content_type)
            stored = (storage or get_photo_storage()).upload(vehicle_id, rule.photo_type.value, data, ext)

        now = datetime.utcnow()
        values = transition_values(rule, now)
        values["updated_at"] = now
        updated = (
            db.query(Vehicle)
            .filter(Vehicle.id == vehicle_id, Vehicle.status == expected)
            .update(values, synchronize_session=False)
        )
        if not updated:
            db.rollback()
            if stored:
                logger.warning(f"[VEHICLES] Photo {stored.path} left without a record after a lost update")
            raise InvalidTransitionError("Error: the vehicle was changed by someone else. Reload and try again")

        photo = None
        if stored:
            photo = VehiclePhoto(
                vehicle_id=vehicle_id,
                photo_url=stored.public_url,
                storage_path=stored.path,
                photo_type=rule.photo_type.value,
                taken_by=ctx.user_id,
                taken_at=now,
            )
            db.add(photo)
        db.commit()
        db.refresh(vehicle)

    notify_mutation("vehicles", vehicle_id, "update", client_id=vehicle.client_id)
    if photo is not None:
        notify_mutation("vehicle_photos", photo.id, "insert", vehicle_id=vehicle_id)

    how = " manually" if request.manual else " with photo" if photo is not None else ""
    logger.info(
        f"[VEHICLES] {vehicle.plate} {expected.value} -> {rule.target.value}{how} by {ctx.profile.username}"
    )
    return vehicle


def check_in(db: Session, ctx: SessionContext, vehicle_id: str,
             request: Optional[TransitionRequest] = None, storage: Optional[PhotoStorage] = None) -> Vehicle:
    return apply_transition(db, ctx, vehicle_id, Transition.CHECK_IN, request, storage)


def check_out(db: Session, ctx: SessionContext, vehicle_id: str,
              request: Optional[TransitionRequest] = None, storage: Optional[PhotoStorage] = None) -> Vehicle:
    return apply_transition(db, ctx, vehicle_id, Transition.CHECK_OUT, request, storage)


def cancel(db: Session, ctx: SessionContext, vehicle_id: str) -> Vehicle:
    return apply_transition(db, ctx, vehicle_id, Transition.CANCEL)
