# app/models/installation.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from app.database import Base


def utc_now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Installation(Base):
    """A tenant: a self-owned storefront or a fulfilment client."""
    __tablename__ = "installations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    country = Column(String(2), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    integrations = relationship("Integration", back_populates="installation", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="installation", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Installation(id={self.id}, name='{self.name}')>"
