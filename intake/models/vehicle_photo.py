# intake/models/vehicle_photo.py
"""
Vehicle photos: append-only evidence captured at check-in and check-out.
Rows are never updated or deleted by the application.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, Text, ForeignKey
from intake.database import Base


class VehiclePhoto(Base):
    __tablename__ = "vehicle_photos"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    vehicle_id = Column(String(36), ForeignKey("vehicles.id"), nullable=False, index=True)
    photo_url = Column(Text, nullable=False)
    storage_path = Column(Text)
    photo_type = Column(String(10), nullable=False)     # checkin | checkout
    taken_by = Column(String(36), ForeignKey("profiles.id"))
    taken_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<VehiclePhoto {self.id} vehicle={self.vehicle_id} type={self.photo_type}>"
