"""
Payment operations exposed to callers: funding and reads.

Wraps the ledger with authorization, the escrow guard and the
transaction boundary.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    ConflictError,
    EscrowDisabledError,
    InternalError,
    ResourceNotFoundError,
)
from backend.app.core.guards import ownership_guard, require_actor
from backend.app.domain.payments.payment_ledger import PaymentLedger
from backend.app.models.load import Load
from backend.app.models.payment import Payment
from backend.app.models.payment_enums import PaymentStatus
from backend.app.services.audit import AuditAction, log_actor_event
from backend.app.services.events import EventKind, EventPublisher

logger = logging.getLogger("livestock.payments")


class PaymentService:

    @staticmethod
    async def _get_payment(db: AsyncSession, payment_id: int) -> Payment:
        payment = await PaymentLedger.read(db, payment_id, refresh=True)
        if not payment:
            raise ResourceNotFoundError("Payment", payment_id)
        return payment

    @staticmethod
    async def fund_payment(
        db: AsyncSession,
        payment_id: int,
        actor: dict,
        publisher: Optional[EventPublisher] = None,
    ) -> Dict[str, Any]:
        """
        Shipper funds escrow for a payment.

        Raises:
            ResourceNotFoundError: no such payment
            InsufficientPermissionsError: actor is not the load's shipper
            EscrowDisabledError: payment belongs to a DIRECT load
            ConflictError: payment is not awaiting funding
        """
        actor = require_actor(actor)
        payment = await PaymentService._get_payment(db, payment_id)

        load = await db.get(Load, payment.load_id)
        ownership_guard.enforce(load.shipper_user_id if load else payment.payer_user_id, actor, "payment")

        if not payment.is_escrow:
            raise EscrowDisabledError()

        try:
            funded = await PaymentLedger.fund(db, payment_id, actor["user_id"])
            if funded is None:
                await db.rollback()
                current = await PaymentService._get_payment(db, payment_id)
                raise ConflictError(
                    f"Payment {payment_id} is {current.status.value}, expected {PaymentStatus.PENDING_FUNDING.value}",
                    details={"status": current.status.value}
                )
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("Funding payment %s failed", payment_id)
            raise InternalError("Payment funding failed") from exc

        view = await PaymentLedger.present(db, funded)
        await log_actor_event(
            db, AuditAction.PAYMENT_FUNDED, actor, "payment", funded.id,
            {"amount": funded.amount, "currency": funded.currency}
        )
        if publisher is not None:
            await publisher.publish(EventKind.PAYMENT_FUNDED, {
                "payment_id": funded.id,
                "trip_id": funded.trip_id,
                "load_id": funded.load_id,
                "amount": funded.amount,
                "currency": funded.currency,
            })
        return view

    @staticmethod
    async def read_payment(db: AsyncSession, payment_id: int, actor: dict) -> Dict[str, Any]:
        """Overlaid payment view for the payer, the payee or a super admin."""
        actor = require_actor(actor)
        payment = await PaymentService._get_payment(db, payment_id)
        ownership_guard.enforce_any([payment.payer_user_id, payment.payee_user_id], actor, "payment")
        return await PaymentLedger.present(db, payment)

    @staticmethod
    async def read_payment_for_trip(db: AsyncSession, trip_id: int, actor: dict) -> Dict[str, Any]:
        actor = require_actor(actor)
        payment = await PaymentLedger.read_by_trip(db, trip_id)
        if not payment:
            raise ResourceNotFoundError("Payment for trip", trip_id)
        ownership_guard.enforce_any([payment.payer_user_id, payment.payee_user_id], actor, "payment")
        return await PaymentLedger.present(db, payment)
