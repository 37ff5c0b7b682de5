"""
Payment disputes: opened by either party to an escrow payment and
resolved by a super admin. Resolution is recorded on the dispute only;
the payment reads differently through the overlay.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    ConflictError,
    InsufficientPermissionsError,
    InternalError,
    InvalidInputError,
    ResourceNotFoundError,
)
from backend.app.core.guards import actor_role, is_super_admin, ownership_guard, require_actor
from backend.app.domain.payments.payment_ledger import PaymentLedger
from backend.app.models.payment import Payment, PaymentDispute
from backend.app.models.payment_enums import DisputeStatus, RESOLVED_DISPUTE_STATUSES
from backend.app.services.audit import AuditAction, log_actor_event
from backend.app.services.events import EventKind, EventPublisher
from backend.app.schemas.payment import DisputeCreate, DisputeResolve

logger = logging.getLogger("livestock.disputes")

CLOSED_DISPUTE_STATUSES = RESOLVED_DISPUTE_STATUSES + (DisputeStatus.CANCELLED,)


def _cents(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


class DisputeService:

    @staticmethod
    async def _get_payment(db: AsyncSession, payment_id: int) -> Payment:
        payment = await PaymentLedger.read(db, payment_id, refresh=True)
        if not payment:
            raise ResourceNotFoundError("Payment", payment_id)
        return payment

    @staticmethod
    async def open_dispute(
        db: AsyncSession,
        payment_id: int,
        data: DisputeCreate,
        actor: dict,
        publisher: Optional[EventPublisher] = None,
    ) -> PaymentDispute:
        actor = require_actor(actor)
        payment = await DisputeService._get_payment(db, payment_id)

        if actor["user_id"] not in (payment.payer_user_id, payment.payee_user_id):
            raise InsufficientPermissionsError("Only the parties to a payment can dispute it")
        if not payment.is_escrow:
            raise InsufficientPermissionsError("Disputes are disabled for direct payment trips")

        role = actor_role(actor)
        dispute = PaymentDispute(
            payment_id=payment.id,
            trip_id=payment.trip_id,
            opened_by_user_id=actor["user_id"],
            opened_by_role=role.value if role else "UNKNOWN",
            reason_code=data.reason_code.strip().upper(),
            description=data.description,
            requested_action=data.requested_action,
            status=DisputeStatus.OPEN,
        )
        db.add(dispute)
        try:
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("Opening dispute on payment %s failed", payment_id)
            raise InternalError("Opening dispute failed") from exc
        await db.refresh(dispute)

        await log_actor_event(
            db, AuditAction.DISPUTE_OPENED, actor, "payment", payment.id,
            {"dispute_id": dispute.id, "reason_code": dispute.reason_code}
        )
        if publisher is not None:
            await publisher.publish(EventKind.DISPUTE_OPENED, {
                "dispute_id": dispute.id,
                "payment_id": payment.id,
                "trip_id": payment.trip_id,
                "opened_by_user_id": dispute.opened_by_user_id,
                "reason_code": dispute.reason_code,
            })
        return dispute

    @staticmethod
    async def list_disputes(db: AsyncSession, payment_id: int, actor: dict) -> List[PaymentDispute]:
        actor = require_actor(actor)
        payment = await DisputeService._get_payment(db, payment_id)
        ownership_guard.enforce_any([payment.payer_user_id, payment.payee_user_id], actor, "payment")

        result = await db.execute(
            select(PaymentDispute)
            .where(PaymentDispute.payment_id == payment.id)
            .order_by(desc(PaymentDispute.created_at), desc(PaymentDispute.id))
        )
        return list(result.scalars().all())

    @staticmethod
    def _validate_resolution(payment: Payment, data: DisputeResolve):
        if data.resolution not in RESOLVED_DISPUTE_STATUSES:
            raise InvalidInputError(
                f"Invalid resolution: {data.resolution.value}",
                details={"allowed": [s.value for s in RESOLVED_DISPUTE_STATUSES]}
            )
        if data.resolution != DisputeStatus.RESOLVED_SPLIT:
            return

        if data.amount_to_hauler is None or data.amount_to_shipper is None:
            raise InvalidInputError("A split requires amount_to_hauler and amount_to_shipper")
        if data.amount_to_hauler < 0 or data.amount_to_shipper < 0:
            raise InvalidInputError("Split amounts cannot be negative")
        if _cents(data.amount_to_hauler) + _cents(data.amount_to_shipper) != _cents(payment.amount):
            raise InvalidInputError(
                "Split amounts must add up to the payment amount",
                details={"amount": payment.amount}
            )

    @staticmethod
    async def resolve_dispute(
        db: AsyncSession,
        dispute_id: int,
        data: DisputeResolve,
        actor: dict,
        publisher: Optional[EventPublisher] = None,
    ) -> Tuple[PaymentDispute, Dict[str, Any]]:
        """
        Record an admin decision on a dispute.

        Returns:
            (dispute, payment view with the decision overlaid)
        """
        actor = require_actor(actor)
        if not is_super_admin(actor):
            raise InsufficientPermissionsError("Only a super admin can resolve disputes")

        dispute = await db.get(PaymentDispute, dispute_id, populate_existing=True)
        if not dispute:
            raise ResourceNotFoundError("Dispute", dispute_id)
        if dispute.status in CLOSED_DISPUTE_STATUSES:
            raise ConflictError(
                f"Dispute {dispute_id} is already {dispute.status.value}",
                details={"status": dispute.status.value}
            )

        payment = await DisputeService._get_payment(db, dispute.payment_id)
        DisputeService._validate_resolution(payment, data)

        dispute.status = data.resolution
        if data.resolution == DisputeStatus.RESOLVED_SPLIT:
            dispute.resolution_amount_to_hauler = data.amount_to_hauler
            dispute.resolution_amount_to_shipper = data.amount_to_shipper
        elif data.resolution == DisputeStatus.RESOLVED_REFUND_TO_SHIPPER:
            dispute.resolution_amount_to_hauler = 0.0
            dispute.resolution_amount_to_shipper = payment.amount
        dispute.resolved_by_user_id = actor["user_id"]
        dispute.resolved_at = datetime.now(timezone.utc)

        try:
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("Resolving dispute %s failed", dispute_id)
            raise InternalError("Resolving dispute failed") from exc
        await db.refresh(dispute)

        view = await PaymentLedger.present(db, payment)
        await log_actor_event(
            db, AuditAction.DISPUTE_RESOLVED, actor, "payment", payment.id,
            {"dispute_id": dispute.id, "resolution": dispute.status.value}
        )
        if publisher is not None:
            await publisher.publish(EventKind.DISPUTE_RESOLVED, {
                "dispute_id": dispute.id,
                "payment_id": payment.id,
                "resolution": dispute.status.value,
                "payout_amount": view["payout_amount"],
                "refund_amount": view["refund_amount"],
            })
        return dispute, view
