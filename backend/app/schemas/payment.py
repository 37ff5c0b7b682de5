"""
Payment and dispute schemas.

PaymentResponse is the overlaid view: settlement fields reflect the latest
resolved dispute, never a rewrite of the ledger row.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.payment_enums import PaymentStatus, DisputeStatus, SettlementOutcome


class PaymentResponse(BaseModel):
    """Schema for displaying a payment."""
    id: int
    load_id: int
    trip_id: int
    payer_user_id: int
    payee_user_id: int
    amount: float
    currency: str
    is_escrow: bool
    status: PaymentStatus
    commission_rate: float
    commission_amount: float
    payout_amount: float
    refund_amount: float = 0.0
    settlement_status: Optional[SettlementOutcome] = None
    dispute_id: Optional[int] = None
    dispute_status: Optional[DisputeStatus] = None
    funded_by_user_id: Optional[int]
    funded_at: Optional[datetime]
    released_by_user_id: Optional[int]
    released_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class DisputeCreate(BaseModel):
    """Schema for opening a dispute on a payment."""
    reason_code: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    requested_action: Optional[str] = Field(None, max_length=100)


class DisputeResolve(BaseModel):
    """
    Admin resolution.

    A split requires both amounts and they must add up to the payment amount.
    """
    resolution: DisputeStatus
    amount_to_hauler: Optional[float] = None
    amount_to_shipper: Optional[float] = None


class DisputeResponse(BaseModel):
    id: int
    payment_id: int
    trip_id: int
    opened_by_user_id: int
    opened_by_role: str
    reason_code: str
    description: Optional[str]
    requested_action: Optional[str]
    status: DisputeStatus
    resolution_amount_to_hauler: Optional[float]
    resolution_amount_to_shipper: Optional[float]
    resolved_by_user_id: Optional[int]
    resolved_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DisputeListResponse(BaseModel):
    disputes: List[DisputeResponse]
    total: int


class DisputeResolutionResponse(BaseModel):
    """Resolved dispute together with the payment as it now reads."""
    dispute: DisputeResponse
    payment: PaymentResponse
