# ============================================================================
# agenda/services/appointment/appointment_service.py
# ============================================================================
"""Status changes on existing appointments"""
from datetime import datetime, timezone
from typing import Optional, Union
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.core.errors import (
    DepositRequired,
    InvalidTransition,
    NotFound,
    SchedulingError,
    StorageError,
)
from agenda.models.appointment import Appointment, AppointmentStatus
from agenda.models.business import Business
from agenda.services.appointment.deposit import AssumeSettledDepositVerifier, DepositVerifier
from agenda.services.appointment.state_machine import coerce_status, plan_transition

logger = logging.getLogger(__name__)


class AppointmentService:
    """Applies state machine transitions, one committed change per call"""

    @staticmethod
    def transition(
            db: Session,
            appointment_id: UUID,
            target: Union[str, AppointmentStatus],
            reason: Optional[str] = None,
            deposit_verifier: Optional[DepositVerifier] = None,
            now: Optional[datetime] = None
    ) -> Appointment:
        """
        Move an appointment to ``target``.

        The update only applies if the status is still the one the decision
        was made on; a concurrent change makes this call fail with
        InvalidTransition instead of overwriting it.
        """
        target_status = coerce_status(target)
        try:
            return AppointmentService._apply(
                db, appointment_id, target_status, reason,
                deposit_verifier or AssumeSettledDepositVerifier(),
                now or datetime.now(timezone.utc),
            )
        except SchedulingError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Transition of appointment {appointment_id} to {target_status.value} failed: {e}")
            raise StorageError(f"Could not update appointment: {e.__class__.__name__}") from e

    @staticmethod
    def cancel(
            db: Session,
            appointment_id: UUID,
            reason: Optional[str] = None,
            now: Optional[datetime] = None
    ) -> Appointment:
        return AppointmentService.transition(
            db, appointment_id, AppointmentStatus.CANCELLED, reason=reason, now=now
        )

    @staticmethod
    def _apply(
            db: Session,
            appointment_id: UUID,
            target: AppointmentStatus,
            reason: Optional[str],
            deposit_verifier: DepositVerifier,
            now: datetime
    ) -> Appointment:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFound("Appointment not found")

        business = db.query(Business).filter(Business.id == appointment.business_id).first()
        require_deposit = bool(business and business.require_deposit)

        current = appointment.status
        changes = plan_transition(
            current, target, require_deposit=require_deposit, now=now, reason=reason
        )

        if target == AppointmentStatus.CONFIRMED and require_deposit \
                and not deposit_verifier.is_settled(appointment):
            raise DepositRequired()

        # Compare-and-swap on the status we validated against
        updated = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.status == current
        ).update(changes, synchronize_session=False)

        if updated == 0:
            db.rollback()
            latest = db.query(Appointment.status).filter(Appointment.id == appointment_id).scalar()
            raise InvalidTransition(
                latest or current,
                target.value,
                f"Appointment changed to {latest} while updating, reload and try again",
            )

        db.commit()
        db.refresh(appointment)
        logger.info(f"Appointment {appointment_id}: {current} -> {appointment.status}")
        return appointment
