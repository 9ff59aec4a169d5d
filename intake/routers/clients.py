# intake/routers/clients.py
"""Client registry: CRUD, search, and CNPJ prefill."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from intake.database import get_db
from intake.dependencies import get_session
from intake.schemas.client import ClientCreate, ClientOut, ClientUpdate, CnpjLookupOut
from intake.services import client_service
from intake.services.auth_service import SessionContext
from intake.services.cnpj_lookup import lookup_cnpj

router = APIRouter()


@router.get("/clients", response_model=list[ClientOut])
def list_clients(search: Optional[str] = None, db: Session = Depends(get_db),
                 ctx: SessionContext = Depends(get_session)):
    """All clients by name. `search` matches name or tax-id digits."""
    return client_service.list_clients(db, search)


@router.get("/clients/cnpj/{cnpj}", response_model=CnpjLookupOut, summary="Prefill from company registry")
def cnpj_prefill(cnpj: str, ctx: SessionContext = Depends(get_session)):
    return lookup_cnpj(cnpj)


@router.get("/clients/{client_id}", response_model=ClientOut)
def get_client(client_id: str, db: Session = Depends(get_db), ctx: SessionContext = Depends(get_session)):
    return client_service.get_client(db, client_id)


@router.post("/clients", response_model=ClientOut, status_code=201)
def create_client(body: ClientCreate, db: Session = Depends(get_db), ctx: SessionContext = Depends(get_session)):
    return client_service.create_client(db, ctx, body)


@router.put("/clients/{client_id}", response_model=ClientOut)
def update_client(client_id: str, body: ClientUpdate, db: Session = Depends(get_db),
                  ctx: SessionContext = Depends(get_session)):
    return client_service.update_client(db, ctx, client_id, body)


@router.delete("/clients/{client_id}")
def delete_client(client_id: str, db: Session = Depends(get_db), ctx: SessionContext = Depends(get_session)):
    client_service.delete_client(db, ctx, client_id)
    return {"id": client_id, "status": "deleted"}
