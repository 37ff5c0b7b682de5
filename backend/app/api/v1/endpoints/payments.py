"""
Payment API Endpoints.

Escrow funding, payment reads and disputes.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user
from backend.app.core.guards import require_role
from backend.app.domain.payments.dispute_service import DisputeService
from backend.app.domain.payments.payment_service import PaymentService
from backend.app.models.enums import UserRole
from backend.app.schemas.payment import (
    DisputeCreate, DisputeListResponse, DisputeResolutionResponse, DisputeResolve,
    DisputeResponse, PaymentResponse
)
from backend.app.services.events import EventPublisher, get_event_publisher

router = APIRouter(prefix="/payments", tags=["Payments"])
admin_router = APIRouter(prefix="/admin/disputes", tags=["Admin - Disputes"])


@router.get("/by-trip/{trip_id}", response_model=PaymentResponse)
async def get_payment_for_trip(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await PaymentService.read_payment_for_trip(db, trip_id, current_user)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: int = Path(..., description="Payment ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Payment with any dispute resolution overlaid."""
    return await PaymentService.read_payment(db, payment_id, current_user)


@router.post("/{payment_id}/fund", response_model=PaymentResponse)
async def fund_payment(
    payment_id: int = Path(..., description="Payment ID"),
    current_user: dict = Depends(require_role([UserRole.SHIPPER, UserRole.SUPER_ADMIN])),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher)
):
    """
    Fund escrow (Shipper only).

    409 if the payment is not awaiting funding or belongs to a DIRECT load.
    """
    return await PaymentService.fund_payment(db, payment_id, current_user, publisher)


@router.post("/{payment_id}/disputes", response_model=DisputeResponse, status_code=status.HTTP_201_CREATED)
async def open_dispute(
    dispute_data: DisputeCreate,
    payment_id: int = Path(..., description="Payment ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher)
):
    return await DisputeService.open_dispute(db, payment_id, dispute_data, current_user, publisher)


@router.get("/{payment_id}/disputes", response_model=DisputeListResponse)
async def list_disputes(
    payment_id: int = Path(..., description="Payment ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    disputes = await DisputeService.list_disputes(db, payment_id, current_user)
    return DisputeListResponse(disputes=disputes, total=len(disputes))


@admin_router.post("/{dispute_id}/resolve", response_model=DisputeResolutionResponse)
async def resolve_dispute(
    resolution_data: DisputeResolve,
    dispute_id: int = Path(..., description="Dispute ID"),
    current_user: dict = Depends(require_role([UserRole.SUPER_ADMIN])),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher)
):
    """Resolve a dispute (Super Admin only). Split amounts must add up to the payment amount."""
    dispute, payment_view = await DisputeService.resolve_dispute(
        db, dispute_id, resolution_data, current_user, publisher
    )
    return DisputeResolutionResponse(
        dispute=DisputeResponse.model_validate(dispute),
        payment=PaymentResponse(**payment_view),
    )
