# app/models/user.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint

from app.database import Base
from app.models.installation import utc_now


class User(Base):
    """Dashboard user. Token issuance lives elsewhere; the API only reads this row."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False, default="user")
    is_global_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)


class UserInstallation(Base):
    """Assignment of a non-admin user to an installation"""
    __tablename__ = "user_installations"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    installation_id = Column(Integer, ForeignKey("installations.id", ondelete="CASCADE"), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint('user_id', 'installation_id', name='uq_user_installations_user_installation'),
    )
