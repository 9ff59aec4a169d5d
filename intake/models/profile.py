# intake/models/profile.py
"""
Profiles: one per authenticated user. The id is shared with auth_users.
Usernames are stored lower-case; the login form collects a username.
"""

from datetime import datetime

from sqlalchemy import Column, String, DateTime
from intake.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    email = Column(String(200), nullable=False)
    username = Column(String(100), unique=True, index=True)
    full_name = Column(String(200), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Profile {self.id} username={self.username}>"
