"""
API v1 router setup
Organized into: public (client booking) and dashboard (staff) routes
"""
from fastapi import APIRouter

from agenda.api.v1.public import availability
from agenda.api.v1.dashboard import appointments, reception

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (availability and online booking)
# ============================================================================
api_v1_router.include_router(
    availability.router,
    tags=["Public"]
)

# ============================================================================
# DASHBOARD ROUTES (staff; authenticated upstream)
# ============================================================================
api_v1_router.include_router(
    appointments.router,
    tags=["Dashboard"]
)

api_v1_router.include_router(
    reception.router,
    tags=["Dashboard"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """API information and available endpoint groups."""
    return {
        "version": "1.0",
        "groups": {
            "public": "Availability and online booking",
            "dashboard": "Appointment status changes, walk-ins and reception view",
        }
    }
