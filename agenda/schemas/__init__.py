from .appointment import (
    BookingRequest,
    CancelRequest,
    ClientIdentity,
    SlotResponse,
    TransitionRequest,
    WalkInRequest,
)

__all__ = [
    "BookingRequest",
    "CancelRequest",
    "ClientIdentity",
    "SlotResponse",
    "TransitionRequest",
    "WalkInRequest",
]
