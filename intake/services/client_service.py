# intake/services/client_service.py
"""
Clients: companies (CNPJ) and individuals (CPF).

Tax ids are stored formatted and compared on digits, so "12.345.678/0001-90"
and "12345678000190" are the same client.
"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from intake.exceptions import ConflictError, NotFoundError, ValidationError
from intake.models.client import Client
from intake.models.vehicle import Vehicle
from intake.schemas.client import ClientCreate, ClientOut, ClientUpdate
from intake.services.auth_service import SessionContext
from intake.services.permissions import Capability
from intake.services.query_cache import notify_mutation, query_cache
from intake.services.status_machine import require_capability
from intake.utils.constants import PersonType
from intake.utils.logger import get_logger
from intake.utils.normalize import digits_only, format_cnpj, format_cpf, format_phone

logger = get_logger(__name__)

CNPJ_DIGITS = 14
CPF_DIGITS = 11


def tax_id_digits(column):
    """SQL expression stripping the punctuation a formatted tax id carries."""
    return func.replace(func.replace(func.replace(column, ".", ""), "/", ""), "-", "")


def _clean_values(values: dict) -> dict:
    if "name" in values:
        if not (values["name"] or "").strip():
            raise ValidationError("Error: client name is required")
        values["name"] = values["name"].strip()

    if values.get("cnpj"):
        if len(digits_only(values["cnpj"])) != CNPJ_DIGITS:
            raise ValidationError("Error: CNPJ must have 14 digits")
        values["cnpj"] = format_cnpj(values["cnpj"])
    if values.get("cpf"):
        if len(digits_only(values["cpf"])) != CPF_DIGITS:
            raise ValidationError("Error: CPF must have 11 digits")
        values["cpf"] = format_cpf(values["cpf"])
    if values.get("phone"):
        values["phone"] = format_phone(values["phone"])

    # empty strings from a form mean "no value"
    for key in ("cnpj", "cpf", "email", "phone"):
        if key in values and values[key] == "":
            values[key] = None
    return values


def find_by_tax_id(db: Session, tax_id: str, exclude_id: Optional[str] = None) -> Optional[Client]:
    digits = digits_only(tax_id)
    if not digits:
        return None
    query = db.query(Client).filter(
        or_(tax_id_digits(Client.cnpj) == digits, tax_id_digits(Client.cpf) == digits)
    )
    if exclude_id:
        query = query.filter(Client.id != exclude_id)
    return query.first()


def _check_duplicates(db: Session, values: dict, exclude_id: Optional[str] = None):
    for key, label in (("cnpj", "CNPJ"), ("cpf", "CPF")):
        if values.get(key) and find_by_tax_id(db, values[key], exclude_id):
            logger.warning(f"[CLIENTS] Duplicate {label} {values[key]}")
            raise ConflictError(f"Error: a client with this {label} is already registered", field=key)


def _commit(db: Session):
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Error: a client with this tax id is already registered")


def create_client(db: Session, ctx: SessionContext, body: ClientCreate) -> Client:
    require_capability(ctx.permissions, Capability.EDIT, "create clients")
    try:
        person_type = PersonType(body.person_type)
    except ValueError:
        raise ValidationError(f"Error: unknown person type '{body.person_type}'")

    values = _clean_values(body.model_dump())
    if person_type == PersonType.COMPANY and not values.get("cnpj"):
        raise ValidationError("Error: CNPJ is required for a company")
    if person_type == PersonType.INDIVIDUAL and not values.get("cpf"):
        raise ValidationError("Error: CPF is required for an individual")
    _check_duplicates(db, values)

    values["person_type"] = person_type.value
    client = Client(**values)
    db.add(client)
    _commit(db)
    db.refresh(client)

    notify_mutation("clients", client.id, "insert")
    logger.info(f"[CLIENTS] Created {client.name} ({client.tax_id}) by {ctx.profile.username}")
    return client


def update_client(db: Session, ctx: SessionContext, client_id: str, body: ClientUpdate) -> Client:
    require_capability(ctx.permissions, Capability.EDIT, "edit clients")
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFoundError("Error: client not found")

    values = _clean_values(body.model_dump(exclude_unset=True))
    _check_duplicates(db, values, exclude_id=client_id)
    for key, value in values.items():
        setattr(client, key, value)
    _commit(db)
    db.refresh(client)

    notify_mutation("clients", client.id, "update")
    logger.info(f"[CLIENTS] Updated {client.id} by {ctx.profile.username}")
    return client


def delete_client(db: Session, ctx: SessionContext, client_id: str):
    require_capability(ctx.permissions, Capability.EDIT, "delete clients")
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFoundError("Error: client not found")
    in_use = db.query(Vehicle.id).filter(Vehicle.client_id == client_id).first()
    if in_use:
        raise ConflictError("Error: client has vehicles and cannot be deleted")

    db.delete(client)
    db.commit()
    notify_mutation("clients", client_id, "delete")
    logger.info(f"[CLIENTS] Deleted {client_id} by {ctx.profile.username}")


def get_client(db: Session, client_id: str) -> ClientOut:
    def load():
        client = db.query(Client).filter(Client.id == client_id).first()
        if not client:
            raise NotFoundError("Error: client not found")
        return ClientOut.model_validate(client)

    return query_cache.get_or_load(("client", client_id), load)


def list_clients(db: Session, search: Optional[str] = None) -> list[ClientOut]:
    """All clients by name. `search` matches a name substring or tax-id digits."""
    term = (search or "").strip()

    def load():
        query = db.query(Client)
        if term:
            conditions = [Client.name.ilike(f"%{term}%")]
            digits = digits_only(term)
            if digits:
                conditions.append(tax_id_digits(Client.cnpj).contains(digits))
                conditions.append(tax_id_digits(Client.cpf).contains(digits))
            query = query.filter(or_(*conditions))
        return [ClientOut.model_validate(c) for c in query.order_by(Client.name).all()]

    return query_cache.get_or_load(("clients", term.lower()), load)
