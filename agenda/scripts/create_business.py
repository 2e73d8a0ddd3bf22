#!/usr/bin/env python3
"""
Script to create a demo barbershop with hours, services and employees
Usage: python -m agenda.scripts.create_business
"""
import sys
from decimal import Decimal

from sqlalchemy.orm import Session

from agenda.config.database import SessionLocal
from agenda.models.business import Business, BusinessHours
from agenda.models.employee import Employee
from agenda.models.service import Service

DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Business hours (Monday=0, Sunday=6)
DEMO_HOURS = [
    {"day_of_week": 0, "open_time": "09:00", "close_time": "19:00", "is_open": True},  # Monday
    {"day_of_week": 1, "open_time": "09:00", "close_time": "19:00", "is_open": True},  # Tuesday
    {"day_of_week": 2, "open_time": "09:00", "close_time": "19:00", "is_open": True},  # Wednesday
    {"day_of_week": 3, "open_time": "09:00", "close_time": "19:00", "is_open": True},  # Thursday
    {"day_of_week": 4, "open_time": "09:00", "close_time": "20:00", "is_open": True},  # Friday
    {"day_of_week": 5, "open_time": "10:00", "close_time": "16:00", "is_open": True},  # Saturday
    {"day_of_week": 6, "open_time": None, "close_time": None, "is_open": False},  # Sunday
]

DEMO_SERVICES = [
    {"name": "Haircut", "duration": 30, "price": Decimal("250.00")},
    {"name": "Beard Trim", "duration": 20, "price": Decimal("150.00")},
    {"name": "Haircut & Beard", "duration": 60, "price": Decimal("380.00")},
]

DEMO_EMPLOYEES = [
    {"display_name": "Carlos", "services": ["Haircut", "Beard Trim", "Haircut & Beard"]},
    {"display_name": "Lucia", "services": ["Haircut"]},
]


def create_demo_business(db: Session, timezone: str = "America/Mexico_City") -> Business:
    """Create a demo barbershop and commit it"""
    business = Business(
        name="Barberia Centro",
        timezone=timezone,
        booking_settings={
            "slot_interval_minutes": 30,
            "max_advance_booking_days": 30,
            "auto_confirm": False,
            "require_deposit": False,
        },
    )
    db.add(business)
    db.flush()  # Get the ID without committing

    for hours_data in DEMO_HOURS:
        db.add(BusinessHours(business_id=business.id, **hours_data))

    services = {}
    for service_data in DEMO_SERVICES:
        service = Service(business_id=business.id, **service_data)
        db.add(service)
        services[service.name] = service

    for employee_data in DEMO_EMPLOYEES:
        db.add(Employee(
            business_id=business.id,
            display_name=employee_data["display_name"],
            services=[services[name] for name in employee_data["services"]],
        ))

    db.commit()
    db.refresh(business)
    return business


def main():
    db: Session = SessionLocal()

    try:
        business = create_demo_business(db)

        print("\n" + "=" * 60)
        print("BUSINESS CREATED SUCCESSFULLY!")
        print("=" * 60)
        print(f"\nBusiness ID: {business.id}")
        print(f"Name: {business.name}")
        print(f"Timezone: {business.timezone}")
        print("\nServices:")
        for service in business.services:
            print(f"  - {service.name} ({service.duration} min, {service.price}): {service.id}")
        print("\nEmployees:")
        for employee in business.employees:
            print(f"  - {employee.display_name}: {employee.id}")
        print("\nBusiness Hours:")
        for hours in business.working_hours:
            day_name = DAYS[hours.day_of_week]
            if not hours.is_open:
                print(f"  {day_name}: CLOSED")
            else:
                print(f"  {day_name}: {hours.open_time} - {hours.close_time}")
        print()

        return str(business.id)

    except Exception as e:
        db.rollback()
        print(f"\nError creating business: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
