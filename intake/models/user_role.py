# intake/models/user_role.py
"""
User roles: role plus four capability flags, one row per profile.
Only admins create or change these rows.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, Boolean, Enum, ForeignKey
from intake.database import Base
from intake.utils.constants import AppRole


class UserRole(Base):
    __tablename__ = "user_roles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("profiles.id"), unique=True, nullable=False, index=True)
    role = Column(
        Enum(AppRole, name="app_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AppRole.VIEWER,
    )
    can_view = Column(Boolean, nullable=False, default=True)
    can_edit = Column(Boolean, nullable=False, default=False)
    can_checkin = Column(Boolean, nullable=False, default=False)
    can_checkout = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<UserRole user={self.user_id} role={self.role}>"
