"""
Dispute overlay.

A resolved dispute changes how a payment reads (who receives what), not
the payment row itself. The ledger's read path passes every payment view
through ``apply_overlay`` with the payment's most recent dispute.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.payment import PaymentDispute
from backend.app.models.payment_enums import DisputeStatus, PaymentStatus, SettlementOutcome


def _money(value) -> float:
    return float(Decimal(str(value or 0)).quantize(Decimal("0.01")))


async def latest_dispute(db: AsyncSession, payment_id: int) -> Optional[PaymentDispute]:
    """Most recent dispute for a payment; ties on created_at go to the higher id."""
    result = await db.execute(
        select(PaymentDispute)
        .where(PaymentDispute.payment_id == payment_id)
        .order_by(desc(PaymentDispute.created_at), desc(PaymentDispute.id))
        .limit(1)
    )
    return result.scalar_one_or_none()


def apply_overlay(view: Dict[str, Any], dispute: Optional[PaymentDispute]) -> Dict[str, Any]:
    """
    Rewrite the settlement fields of a payment view for a dispute outcome.

    RESOLVED_SPLIT:              payout = amount_to_hauler, refund = amount_to_shipper
    RESOLVED_REFUND_TO_SHIPPER:  payout = 0, refund = full amount
    RESOLVED_RELEASE_TO_HAULER:  settlement reads as released to the hauler
    Open or cancelled disputes only surface their status.
    """
    if dispute is None:
        return view

    view["dispute_id"] = dispute.id
    view["dispute_status"] = dispute.status

    if dispute.status == DisputeStatus.RESOLVED_SPLIT:
        view["payout_amount"] = _money(dispute.resolution_amount_to_hauler)
        view["refund_amount"] = _money(dispute.resolution_amount_to_shipper)
        view["settlement_status"] = SettlementOutcome.SPLIT_BETWEEN_PARTIES
    elif dispute.status == DisputeStatus.RESOLVED_REFUND_TO_SHIPPER:
        view["payout_amount"] = 0.0
        view["refund_amount"] = _money(view["amount"])
        view["settlement_status"] = SettlementOutcome.REFUNDED_TO_SHIPPER
    elif dispute.status == DisputeStatus.RESOLVED_RELEASE_TO_HAULER:
        view["refund_amount"] = 0.0
        view["settlement_status"] = SettlementOutcome.RELEASED_TO_HAULER

    return view


def base_view(payment) -> Dict[str, Any]:
    """Payment row as a plain dict, before any dispute overlay."""
    if payment.status == PaymentStatus.RELEASED and payment.payout_amount is not None:
        payout = payment.payout_amount
    else:
        payout = _money(Decimal(str(payment.amount)) - Decimal(str(payment.commission_amount)))

    return {
        "id": payment.id,
        "load_id": payment.load_id,
        "trip_id": payment.trip_id,
        "payer_user_id": payment.payer_user_id,
        "payee_user_id": payment.payee_user_id,
        "amount": payment.amount,
        "currency": payment.currency,
        "is_escrow": payment.is_escrow,
        "status": payment.status,
        "commission_rate": payment.commission_rate,
        "commission_amount": payment.commission_amount,
        "payout_amount": payout,
        "refund_amount": 0.0,
        "settlement_status": (
            SettlementOutcome.RELEASED_TO_HAULER if payment.status == PaymentStatus.RELEASED else None
        ),
        "dispute_id": None,
        "dispute_status": None,
        "funded_by_user_id": payment.funded_by_user_id,
        "funded_at": payment.funded_at,
        "released_by_user_id": payment.released_by_user_id,
        "released_at": payment.released_at,
        "created_at": payment.created_at,
        "updated_at": payment.updated_at,
    }
