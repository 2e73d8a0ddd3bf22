# ============================================================================
# FILE: agenda/api/v1/dashboard/reception.py
# Front-desk view, polled by the reception tab
# ============================================================================
from uuid import UUID

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from agenda.config.database import get_db
from agenda.services.reception.break_registry import BreakRegistry, get_break_registry
from agenda.services.reception.reception_service import ReceptionService

router = APIRouter(prefix="/businesses/{business_id}", tags=["dashboard-reception"])


@router.get("/reception")
async def get_reception_view(
        business_id: UUID = Path(..., description="The business ID"),
        break_registry: BreakRegistry = Depends(get_break_registry),
        db: Session = Depends(get_db)
):
    """
    Who is available, busy or on break right now, and today's appointments.
    Recomputed on every request; poll it.
    """
    return await ReceptionService.get_reception_view(db, business_id, break_registry)


@router.put("/employees/{employee_id}/break")
async def start_break(
        business_id: UUID = Path(..., description="The business ID"),
        employee_id: UUID = Path(..., description="The employee ID"),
        break_registry: BreakRegistry = Depends(get_break_registry),
        db: Session = Depends(get_db)
):
    return await ReceptionService.set_break(db, business_id, employee_id, True, break_registry)


@router.delete("/employees/{employee_id}/break")
async def end_break(
        business_id: UUID = Path(..., description="The business ID"),
        employee_id: UUID = Path(..., description="The employee ID"),
        break_registry: BreakRegistry = Depends(get_break_registry),
        db: Session = Depends(get_db)
):
    return await ReceptionService.set_break(db, business_id, employee_id, False, break_registry)
