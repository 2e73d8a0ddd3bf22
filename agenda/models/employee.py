# agenda/models/employee.py
"""
Employee Model
An employee performs a fixed set of services. Inactive employees never show up
in availability and cannot be booked.
"""
from sqlalchemy import Column, String, Boolean, DateTime, Table, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from agenda.models.base import Base


# Association table for many-to-many Employee <-> Service (who can perform what)
employee_service_association = Table(
    "employee_services",
    Base.metadata,
    Column("employee_id", Uuid, ForeignKey("employees.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", Uuid, ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
)


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid,
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    display_name = Column(String(200), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    business = relationship("Business", back_populates="employees")
    services = relationship("Service", secondary=employee_service_association, lazy="selectin")

    def __repr__(self):
        return f"<Employee(id={self.id}, name={self.display_name}, business_id={self.business_id})>"

    def can_perform(self, service_id) -> bool:
        return any(service.id == service_id for service in self.services)
