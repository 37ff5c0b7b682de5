"""
Load Board API Endpoints.

Shippers post loads and assign them to the winning carrier.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user
from backend.app.core.guards import require_role
from backend.app.domain.loads.load_assignment import LoadAssignmentService
from backend.app.domain.loads.load_service import LoadService
from backend.app.domain.payments.payment_ledger import PaymentLedger
from backend.app.models.enums import UserRole
from backend.app.models.load_enums import LoadStatus
from backend.app.schemas.load import (
    AssignmentResponse, LoadAssignRequest, LoadCreate, LoadListResponse, LoadResponse
)
from backend.app.schemas.payment import PaymentResponse
from backend.app.schemas.trip import TripResponse
from backend.app.services.audit import log_actor_event, AuditAction
from backend.app.services.events import EventPublisher, get_event_publisher

router = APIRouter(prefix="/loads", tags=["Loads"])


@router.post("", response_model=LoadResponse, status_code=status.HTTP_201_CREATED)
async def create_load(
    load_data: LoadCreate,
    current_user: dict = Depends(require_role([UserRole.SHIPPER, UserRole.SUPER_ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """
    Post a load to the board.

    DIRECT payment requires ``direct_disclaimer_accepted=true`` and a
    disclaimer version.
    """
    load = await LoadService.create_load(db, current_user, load_data)

    await log_actor_event(
        db, AuditAction.LOAD_CREATED, current_user, "load", load.id,
        {"payment_mode": load.payment_mode.value, "offer_price": load.offer_price}
    )
    return load


@router.get("", response_model=LoadListResponse)
async def list_loads(
    status_filter: Optional[LoadStatus] = Query(None, alias="status"),
    mine: bool = Query(False, description="Only loads posted by the caller"),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    loads = await LoadService.list_loads(
        db,
        status=status_filter,
        shipper_user_id=current_user["user_id"] if mine else None,
        limit=limit,
    )
    return LoadListResponse(loads=loads, total=len(loads))


@router.get("/{load_id}", response_model=LoadResponse)
async def get_load(
    load_id: int = Path(..., description="Load ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await LoadService.get_load(db, load_id)


@router.delete("/{load_id}", response_model=LoadResponse)
async def delete_load(
    load_id: int = Path(..., description="Load ID"),
    current_user: dict = Depends(require_role([UserRole.SHIPPER, UserRole.SUPER_ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Withdraw a load that has not been assigned yet."""
    load = await LoadService.delete_load(db, load_id, current_user)
    await log_actor_event(db, AuditAction.LOAD_DELETED, current_user, "load", load.id)
    return load


@router.post("/{load_id}/assign", response_model=AssignmentResponse)
async def assign_load(
    assign_data: LoadAssignRequest,
    load_id: int = Path(..., description="Load ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher)
):
    """
    Assign a load to the winning carrier.

    Provisions the trip and opens the escrow payment in one transaction.
    Repeating the call for the same carrier returns the existing assignment.
    """
    result = await LoadAssignmentService.assign(
        db, load_id, current_user, assign_data.carrier_user_id, publisher
    )

    payment = None
    if result.payment is not None:
        payment = PaymentResponse(**await PaymentLedger.present(db, result.payment))

    return AssignmentResponse(
        load=LoadResponse.model_validate(result.load),
        trip=TripResponse.model_validate(result.trip),
        payment=payment,
    )
