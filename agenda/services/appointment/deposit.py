# agenda/services/appointment/deposit.py
"""
Deposit verification hook.

Billing owns deposits; the scheduling core only asks whether one has been
settled before a booking is confirmed for a business that requires it.
"""
from typing import Protocol

from agenda.models.appointment import Appointment


class DepositVerifier(Protocol):
    def is_settled(self, appointment: Appointment) -> bool:
        ...


class AssumeSettledDepositVerifier:
    """Used until a billing integration is wired in: every deposit counts as settled."""

    def is_settled(self, appointment: Appointment) -> bool:
        return True


_default_verifier = AssumeSettledDepositVerifier()


def get_deposit_verifier() -> DepositVerifier:
    """FastAPI dependency, override to plug in billing"""
    return _default_verifier
