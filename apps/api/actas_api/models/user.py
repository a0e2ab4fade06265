"""Internal user directory model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from actas_api.db.base import Base

ROLE_ADMIN = "admin"
ROLE_USER = "user"


class User(Base):
    """Internal user as seen by this service (credentials live with the login service)."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(String(50), default=ROLE_USER, nullable=False)  # admin, user
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
