"""
Payment Ledger (Domain Logic).

Escrow state machine for the single payment attached to a trip:

    PENDING_FUNDING -> FUNDED -> RELEASED

Every transition is a conditional UPDATE on the expected prior status, so
a concurrent or repeated call never double-funds or double-releases. None
of these methods commit; the calling operation owns the transaction.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.models.payment import Payment
from backend.app.models.payment_enums import PaymentStatus
from backend.app.domain.payments.dispute_overlay import latest_dispute, apply_overlay, base_view

logger = logging.getLogger("livestock.payments")

CENTS = Decimal("0.01")


class PaymentLedger:

    @staticmethod
    def compute_commission(amount: float, rate_percent: float) -> Tuple[float, float]:
        """
        Split an amount into (commission, payout).

        commission = round(amount * rate / 100, 2) and payout = amount - commission,
        so the two always add back up to the amount.
        """
        amount_dec = Decimal(str(amount))
        commission = (amount_dec * Decimal(str(rate_percent)) / Decimal(100)).quantize(CENTS, rounding=ROUND_HALF_UP)
        payout = amount_dec - commission
        return float(commission), float(payout)

    @staticmethod
    async def open(
        db: AsyncSession,
        trip_id: int,
        load_id: int,
        payer_user_id: int,
        payee_user_id: int,
        amount: float,
        currency: Optional[str] = None,
        is_escrow: bool = True,
        commission_rate: Optional[float] = None,
    ) -> Payment:
        """
        Open the payment for a trip in PENDING_FUNDING.

        The commission is computed at the configured platform rate and stored,
        so later rate changes do not affect payments already opened.
        """
        rate = settings.platform_commission_percent if commission_rate is None else commission_rate
        commission, _ = PaymentLedger.compute_commission(amount, rate)

        payment = Payment(
            load_id=load_id,
            trip_id=trip_id,
            payer_user_id=payer_user_id,
            payee_user_id=payee_user_id,
            amount=amount,
            currency=(currency or settings.default_currency).upper(),
            commission_rate=rate,
            commission_amount=commission,
            is_escrow=is_escrow,
            status=PaymentStatus.PENDING_FUNDING,
        )
        db.add(payment)
        await db.flush()

        logger.info("Opened payment %s for trip %s (amount=%s, commission=%s)",
                    payment.id, trip_id, amount, commission)
        return payment

    @staticmethod
    async def fund(db: AsyncSession, payment_id: int, actor_user_id: int) -> Optional[Payment]:
        """
        PENDING_FUNDING -> FUNDED.

        Returns None when the payment is missing or no longer pending; the
        caller decides how to report that.
        """
        now = datetime.now(timezone.utc)
        result = await db.execute(
            update(Payment)
            .where(Payment.id == payment_id, Payment.status == PaymentStatus.PENDING_FUNDING)
            .values(
                status=PaymentStatus.FUNDED,
                funded_by_user_id=actor_user_id,
                funded_at=now,
                updated_at=now,
            )
        )
        if result.rowcount == 0:
            return None
        return await PaymentLedger.read(db, payment_id, refresh=True)

    @staticmethod
    async def release(db: AsyncSession, payment_id: int, actor_user_id: Optional[int]) -> Optional[Payment]:
        """
        FUNDED -> RELEASED, fixing commission and payout from the stored rate.

        Already RELEASED is returned unchanged. Returns None when the payment
        is missing or was never funded.
        """
        payment = await PaymentLedger.read(db, payment_id, refresh=True)
        if payment is None:
            return None
        if payment.status == PaymentStatus.RELEASED:
            return payment
        if payment.status != PaymentStatus.FUNDED:
            return None

        commission, payout = PaymentLedger.compute_commission(payment.amount, payment.commission_rate)
        now = datetime.now(timezone.utc)
        result = await db.execute(
            update(Payment)
            .where(Payment.id == payment_id, Payment.status == PaymentStatus.FUNDED)
            .values(
                status=PaymentStatus.RELEASED,
                commission_amount=commission,
                payout_amount=payout,
                released_by_user_id=actor_user_id,
                released_at=now,
                updated_at=now,
            )
        )

        payment = await PaymentLedger.read(db, payment_id, refresh=True)
        if result.rowcount == 0:
            # Another caller moved it first
            return payment if payment is not None and payment.status == PaymentStatus.RELEASED else None

        logger.info("Released payment %s (payout=%s, commission=%s)", payment_id, payout, commission)
        return payment

    @staticmethod
    async def release_for_trip(db: AsyncSession, trip_id: int, actor_user_id: Optional[int]) -> Optional[Payment]:
        payment = await PaymentLedger.read_by_trip(db, trip_id)
        if payment is None:
            return None
        return await PaymentLedger.release(db, payment.id, actor_user_id)

    @staticmethod
    async def read(db: AsyncSession, payment_id: int, refresh: bool = False) -> Optional[Payment]:
        return await db.get(Payment, payment_id, populate_existing=refresh)

    @staticmethod
    async def read_by_trip(db: AsyncSession, trip_id: int) -> Optional[Payment]:
        result = await db.execute(
            select(Payment)
            .where(Payment.trip_id == trip_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def present(db: AsyncSession, payment: Payment) -> Dict[str, Any]:
        """Payment as callers see it, with the latest dispute overlaid."""
        dispute = await latest_dispute(db, payment.id)
        return apply_overlay(base_view(payment), dispute)
