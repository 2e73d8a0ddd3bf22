# agenda/models/business.py
"""
Business Model
Working hours and booking settings are read-only inputs to the scheduling core;
they are owned and edited by the business-profile module.
"""
from sqlalchemy import Column, String, Boolean, DateTime, JSON, Integer, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from agenda.config.settings import get_settings
from agenda.models.base import Base

settings = get_settings()


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)

    # System configuration
    timezone = Column(String(50), default="UTC")
    # slot_interval_minutes, max_advance_booking_days, auto_confirm, require_deposit
    booking_settings = Column(JSON, default=dict)

    working_hours = relationship(
        "BusinessHours",
        back_populates="business",
        order_by="BusinessHours.day_of_week",
        cascade="all, delete-orphan",
    )
    employees = relationship("Employee", back_populates="business")
    services = relationship("Service", back_populates="business")

    # Technical fields
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    is_active = Column(Boolean, default=True)

    def __repr__(self):
        return f"<Business(id={self.id}, name={self.name})>"

    # Booking settings with platform defaults

    @property
    def slot_interval_minutes(self) -> int:
        value = (self.booking_settings or {}).get("slot_interval_minutes")
        return int(value) if value else settings.DEFAULT_SLOT_INTERVAL_MINUTES

    @property
    def max_advance_booking_days(self) -> int:
        value = (self.booking_settings or {}).get("max_advance_booking_days")
        return int(value) if value is not None else settings.DEFAULT_MAX_ADVANCE_BOOKING_DAYS

    @property
    def auto_confirm(self) -> bool:
        return bool((self.booking_settings or {}).get("auto_confirm", False))

    @property
    def require_deposit(self) -> bool:
        return bool((self.booking_settings or {}).get("require_deposit", False))


class BusinessHours(Base):
    __tablename__ = "business_hours"
    __table_args__ = (
        UniqueConstraint("business_id", "day_of_week", name="uq_business_hours_day"),
    )

    id = Column(Integer, primary_key=True)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0=Monday, 6=Sunday
    is_open = Column(Boolean, default=True, nullable=False)
    open_time = Column(String(5), nullable=True)  # HH:MM format
    close_time = Column(String(5), nullable=True)  # HH:MM format

    business = relationship("Business", back_populates="working_hours")

    def __repr__(self):
        return f"<BusinessHours(business_id={self.business_id}, day={self.day_of_week})>"
