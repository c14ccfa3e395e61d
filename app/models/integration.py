# app/models/integration.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base
from app.models.installation import utc_now


class Integration(Base):
    """
    Credential and settings binding between one installation and one
    marketplace platform.

    ``credentials`` and ``settings`` hold serialized JSON whose shape depends on
    ``platform``; they are only parsed at the service boundary. Several rows for
    the same (installation, platform) pair are allowed.
    """
    __tablename__ = "integrations"

    id = Column(Integer, primary_key=True, index=True)
    installation_id = Column(Integer, ForeignKey("installations.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String(50), nullable=False, index=True)  # e.g. 'bol.com'
    active = Column(Boolean, nullable=False, default=True)
    credentials = Column(Text, nullable=False)
    settings = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    installation = relationship("Installation", back_populates="integrations")

    def __repr__(self):
        return f"<Integration(id={self.id}, installation_id={self.installation_id}, platform='{self.platform}', active={self.active})>"
