# agenda/models/service.py
"""
Service Model - Structured service definitions
Source of truth for price/duration at booking time. Appointments keep their own
snapshot, so edits here never reach existing bookings.
"""
from sqlalchemy import CheckConstraint, Column, String, Numeric, Integer, ForeignKey, Boolean, DateTime, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from agenda.models.base import Base


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (
        CheckConstraint("duration > 0", name="ck_services_duration_positive"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid,
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Core service details
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    price = Column(Numeric(10, 2), nullable=False, default=0)  # Stored as decimal for precision
    duration = Column(Integer, nullable=False)  # Duration in minutes, > 0

    # Status
    is_active = Column(Boolean, default=True, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    # Relationships
    business = relationship("Business", back_populates="services")

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, business_id={self.business_id})>"
