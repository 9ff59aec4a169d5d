# intake/models/auth.py
"""
Identity tables: credentials and bearer-token sessions.
auth_users.id is the same id used by profiles.
"""

from datetime import datetime

from sqlalchemy import Column, String, DateTime, ForeignKey
from intake.database import Base


class AuthUser(Base):
    __tablename__ = "auth_users"

    id = Column(String(36), primary_key=True)
    email = Column(String(200), unique=True, nullable=False, index=True)
    password_hash = Column(String(300), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<AuthUser {self.id} email={self.email}>"


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    token = Column(String(100), primary_key=True)
    user_id = Column(String(36), ForeignKey("auth_users.id"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<AuthSession user={self.user_id} expires={self.expires_at}>"
