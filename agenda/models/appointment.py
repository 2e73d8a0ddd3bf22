# agenda/models/appointment.py
from sqlalchemy import (
    Column, String, Integer, Text, Date, DateTime, Boolean, Numeric, ForeignKey, Index, Uuid, text
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
import uuid

from agenda.models.base import Base


class AppointmentStatus(str, enum.Enum):
    """Operational lifecycle of a booking."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


ACTIVE_STATUSES = (
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.CHECKED_IN,
    AppointmentStatus.IN_PROGRESS,
)

TERMINAL_STATUSES = (
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
)

ACTIVE_STATUS_VALUES = tuple(status.value for status in ACTIVE_STATUSES)

_ACTIVE_STATUS_SQL = "status IN ({})".format(
    ", ".join(f"'{value}'" for value in ACTIVE_STATUS_VALUES)
)


class BookingSource(str, enum.Enum):
    ONLINE = "online"
    STAFF = "staff"
    WALK_IN = "walk_in"


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # One live booking per employee/date/start; cancelled rows stay for history
        Index(
            "uq_appointments_active_slot",
            "employee_id", "date", "start_time",
            unique=True,
            postgresql_where=text(_ACTIVE_STATUS_SQL),
            sqlite_where=text(_ACTIVE_STATUS_SQL),
        ),
        Index("ix_appointments_business_date", "business_id", "date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # References
    business_id = Column(Uuid, ForeignKey("businesses.id"), nullable=False)
    service_id = Column(Uuid, ForeignKey("services.id"), nullable=False)
    employee_id = Column(Uuid, ForeignKey("employees.id"), nullable=False)

    # Customer info: registered client XOR guest contact details
    client_id = Column(Uuid, nullable=True, index=True)
    guest_name = Column(String, nullable=True)
    guest_email = Column(String, nullable=True)
    guest_phone = Column(String, nullable=True)

    # Appointment details (business-local)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM, start_time + duration
    duration_minutes = Column(Integer, nullable=False)  # snapshot of Service.duration
    price = Column(Numeric(10, 2), nullable=False)  # snapshot of Service.price
    notes = Column(Text, nullable=True)

    # Status tracking
    status = Column(String(20), nullable=False, default=AppointmentStatus.PENDING.value)
    is_paid = Column(Boolean, nullable=False, default=False)
    booking_source = Column(String(20), default=BookingSource.ONLINE.value)  # online, staff, walk_in

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    no_show_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    service = relationship("Service")
    employee = relationship("Employee")

    def __repr__(self):
        return f"<Appointment(id={self.id}, employee_id={self.employee_id}, {self.date} {self.start_time}, {self.status})>"

    @property
    def is_terminal(self) -> bool:
        return self.status in {status.value for status in TERMINAL_STATUSES}
