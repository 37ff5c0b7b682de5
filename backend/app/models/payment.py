"""
Payment and PaymentDispute database models.

The Payment row is the canonical escrow ledger entry and is never rewritten
by dispute resolution; disputes are overlaid at read time.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, Text, ForeignKey, DateTime, Enum, UniqueConstraint
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.payment_enums import PaymentStatus, DisputeStatus


class Payment(Base):
    """
    Payment model.

    Follows a strict escrow workflow: PENDING_FUNDING -> FUNDED -> RELEASED.
    One payment per trip.
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Linkage
    load_id = Column(Integer, ForeignKey('loads.id'), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=False, index=True)

    # Parties
    payer_user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)  # Shipper
    payee_user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)  # Hauler

    # Financials
    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    commission_rate = Column(Float, nullable=False)  # percent
    commission_amount = Column(Float, nullable=False)
    payout_amount = Column(Float, nullable=True)  # fixed at release
    is_escrow = Column(Boolean, default=True, nullable=False)

    # Status
    status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING_FUNDING, nullable=False, index=True)

    # Funding Flow
    funded_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    funded_at = Column(DateTime(timezone=True), nullable=True)

    # Release Flow
    released_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    released_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('trip_id', name='uq_payments_trip_id'),
    )

    def __repr__(self):
        return f"<Payment(id={self.id}, status='{self.status.value}', amount={self.amount})>"


class PaymentDispute(Base):
    """
    Dispute raised against a payment.

    The most recent dispute for a payment decides the settlement overlay.
    """
    __tablename__ = "payment_disputes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    payment_id = Column(Integer, ForeignKey('payments.id'), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=False, index=True)

    opened_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    opened_by_role = Column(String(50), nullable=False)
    reason_code = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    requested_action = Column(String(100), nullable=True)

    status = Column(Enum(DisputeStatus), default=DisputeStatus.OPEN, nullable=False, index=True)

    # Resolution
    resolution_amount_to_hauler = Column(Float, nullable=True)
    resolution_amount_to_shipper = Column(Float, nullable=True)
    resolved_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<PaymentDispute(id={self.id}, payment_id={self.payment_id}, status='{self.status.value}')>"
