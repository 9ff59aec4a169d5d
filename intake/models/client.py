# intake/models/client.py
"""
Clients table: companies (CNPJ) and individuals (CPF) that own vehicles.
Tax ids are stored with their formatting; searches compare digits only.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, Date, Text
from intake.database import Base


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    person_type = Column(String(20), nullable=False, default="juridica")   # juridica | fisica
    name = Column(String(200), nullable=False, index=True)
    cnpj = Column(String(18), unique=True)
    cpf = Column(String(14), unique=True)
    trade_name = Column(String(200))
    taxpayer_type = Column(String(50))
    municipal_registration = Column(String(50))
    state_registration = Column(String(50))
    rg = Column(String(20))
    birth_date = Column(Date)
    gender = Column(String(20))
    marital_status = Column(String(30))
    address = Column(Text)
    phone = Column(String(30))
    email = Column(String(200))
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def tax_id(self):
        return self.cnpj if self.person_type == "juridica" else self.cpf

    def __repr__(self):
        return f"<Client {self.id} name={self.name} tax_id={self.tax_id}>"
