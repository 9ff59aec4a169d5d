from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional


class ClientCreate(BaseModel):
    person_type: str = "juridica"        # juridica | fisica
    name: str
    cnpj: Optional[str] = None
    cpf: Optional[str] = None
    trade_name: Optional[str] = None
    taxpayer_type: Optional[str] = None
    municipal_registration: Optional[str] = None
    state_registration: Optional[str] = None
    rg: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class ClientUpdate(BaseModel):
    name: Optional[str] = None
    cnpj: Optional[str] = None
    cpf: Optional[str] = None
    trade_name: Optional[str] = None
    taxpayer_type: Optional[str] = None
    municipal_registration: Optional[str] = None
    state_registration: Optional[str] = None
    rg: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class ClientBrief(BaseModel):
    id: str
    name: str
    person_type: str
    cnpj: Optional[str]
    cpf: Optional[str]

    class Config:
        from_attributes = True


class ClientOut(ClientCreate):
    id: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class CnpjLookupOut(BaseModel):
    cnpj: str
    name: Optional[str] = None
    trade_name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
