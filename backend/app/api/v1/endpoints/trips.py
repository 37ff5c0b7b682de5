"""
Trip Execution API Endpoints.

Crew-facing operations on a provisioned trip: status, pre-trip check,
proof of delivery and expenses.
"""

from fastapi import APIRouter, Depends, Path, Response, status
from pydantic import BaseModel
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user
from backend.app.core.guards import require_role
from backend.app.domain.payments.payment_ledger import PaymentLedger
from backend.app.domain.trips.trip_lifecycle import TripLifecycleService
from backend.app.models.enums import UserRole
from backend.app.schemas.payment import PaymentResponse
from backend.app.schemas.trip import (
    EpodCreate, EpodResponse, ExpenseCreate, ExpenseListResponse, ExpenseResponse,
    PreTripCheckCreate, PreTripCheckResponse, TripResponse, TripStatusUpdate
)
from backend.app.services.events import EventPublisher, get_event_publisher

router = APIRouter(prefix="/trips", tags=["Trips"])

CREW_ROLES = [UserRole.HAULER, UserRole.DRIVER, UserRole.SUPER_ADMIN]


class EpodCaptureResponse(BaseModel):
    epod: EpodResponse
    trip: TripResponse
    payment: Optional[PaymentResponse] = None


@router.get("/by-load/{load_id}", response_model=TripResponse)
async def get_trip_for_load(
    load_id: int = Path(..., description="Load ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await TripLifecycleService.get_trip_for_load(db, load_id, current_user)


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Trip details including the rest-stop plan."""
    return await TripLifecycleService.get_trip(db, trip_id, current_user)


@router.patch("/{trip_id}/status", response_model=TripResponse)
async def update_trip_status(
    status_data: TripStatusUpdate,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role(CREW_ROLES)),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher)
):
    """
    Move the trip to a new status.

    Accepts "in_progress" for en_route and "canceled" for cancelled.
    """
    return await TripLifecycleService.transition_status(
        db, trip_id, status_data.status, current_user, publisher
    )


@router.post("/{trip_id}/start", response_model=TripResponse)
async def start_trip(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role(CREW_ROLES)),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher)
):
    return await TripLifecycleService.start_trip(db, trip_id, current_user, publisher)


@router.post("/{trip_id}/pre-trip-check", response_model=PreTripCheckResponse)
async def save_pre_trip_check(
    check_data: PreTripCheckCreate,
    response: Response,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role(CREW_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Create or replace the trip's pre-trip check. 201 on first save, 200 after."""
    check, created = await TripLifecycleService.capture_pre_trip_check(db, trip_id, check_data, current_user)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return check


@router.get("/{trip_id}/pre-trip-check", response_model=PreTripCheckResponse)
async def get_pre_trip_check(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await TripLifecycleService.get_pre_trip_check(db, trip_id, current_user)


@router.post("/{trip_id}/epod", response_model=EpodCaptureResponse)
async def capture_epod(
    epod_data: EpodCreate,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role(CREW_ROLES)),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher)
):
    """
    Capture proof of delivery.

    Completes the trip and its load and releases a funded escrow payment.
    ``payment`` is null when nothing was released.
    """
    result = await TripLifecycleService.capture_epod(db, trip_id, epod_data, current_user, publisher)

    payment = None
    if result.payment is not None:
        payment = PaymentResponse(**await PaymentLedger.present(db, result.payment))

    return EpodCaptureResponse(
        epod=EpodResponse.model_validate(result.epod),
        trip=TripResponse.model_validate(result.trip),
        payment=payment,
    )


@router.get("/{trip_id}/epod", response_model=EpodResponse)
async def get_epod(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await TripLifecycleService.get_epod(db, trip_id, current_user)


@router.post("/{trip_id}/expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def record_expense(
    expense_data: ExpenseCreate,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role(CREW_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    return await TripLifecycleService.record_expense(db, trip_id, expense_data, current_user)


@router.get("/{trip_id}/expenses", response_model=ExpenseListResponse)
async def list_expenses(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    expenses = await TripLifecycleService.list_expenses(db, trip_id, current_user)
    return ExpenseListResponse(expenses=expenses, total=len(expenses))
