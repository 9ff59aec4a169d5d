# intake/models/vehicle.py
"""
Vehicles table: one row per shop visit.
The same plate may appear many times over the years (re-visits).
status / checkin_at / checkout_at are written only by the status machine.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, Enum, ForeignKey
from sqlalchemy.orm import relationship
from intake.database import Base
from intake.utils.constants import VehicleStatus


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    plate = Column(String(7), nullable=False, index=True)
    brand = Column(String(100))
    model = Column(String(100))
    year = Column(Integer)
    color = Column(String(50))
    chassis = Column(String(50))
    odometer = Column(Integer)
    status = Column(
        Enum(VehicleStatus, name="vehicle_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=VehicleStatus.AWAITING_DROPOFF,
        index=True,
    )
    checkin_at = Column(DateTime)
    checkout_at = Column(DateTime)
    needs_tow = Column(Boolean, nullable=False, default=False)
    defect_description = Column(Text)
    created_by = Column(String(36), ForeignKey("profiles.id"), index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    client = relationship("Client", lazy="joined")

    def __repr__(self):
        return f"<Vehicle {self.id} plate={self.plate} status={self.status}>"
