"""
Trip Lifecycle (Domain Logic).

Status transitions and execution records for a provisioned trip:

    planned -> assigned -> en_route -> completed
         \\________\\___________\\-----> cancelled

Starting a trip puts its load in transit; completing it (explicitly or by
ePOD) completes the load. Capturing the ePOD also releases a funded escrow
payment in the same transaction.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    AppException,
    ConflictError,
    InternalError,
    InvalidInputError,
    InvalidStatusError,
    ResourceNotFoundError,
)
from backend.app.core.guards import ownership_guard, require_actor
from backend.app.domain.payments.payment_ledger import PaymentLedger
from backend.app.models.hauler import Hauler, Truck, Driver
from backend.app.models.load import Load
from backend.app.models.load_enums import LoadStatus
from backend.app.models.payment import Payment
from backend.app.models.payment_enums import PaymentStatus
from backend.app.models.trip import Trip
from backend.app.models.trip_enums import TripStatus
from backend.app.models.trip_records import PreTripCheck, TripEpod, TripExpense
from backend.app.schemas.trip import EpodCreate, ExpenseCreate, PreTripCheckCreate, TripResponse
from backend.app.services.audit import AuditAction, log_actor_event
from backend.app.services.events import EventKind, EventPublisher

logger = logging.getLogger("livestock.trips")


STATUS_SYNONYMS = {
    "planned": TripStatus.PLANNED,
    "assigned": TripStatus.ASSIGNED,
    "en_route": TripStatus.EN_ROUTE,
    "enroute": TripStatus.EN_ROUTE,
    "in_progress": TripStatus.EN_ROUTE,
    "in_transit": TripStatus.EN_ROUTE,
    "completed": TripStatus.COMPLETED,
    "cancelled": TripStatus.CANCELLED,
    "canceled": TripStatus.CANCELLED,
}

ALLOWED_TRANSITIONS = {
    TripStatus.PLANNED: {TripStatus.ASSIGNED, TripStatus.EN_ROUTE, TripStatus.CANCELLED},
    TripStatus.ASSIGNED: {TripStatus.EN_ROUTE, TripStatus.CANCELLED},
    TripStatus.EN_ROUTE: {TripStatus.COMPLETED, TripStatus.CANCELLED},
    TripStatus.COMPLETED: set(),
    TripStatus.CANCELLED: set(),
}


def normalize_status(value) -> Optional[TripStatus]:
    """Map a requested status (case, dashes and spaces ignored) to a TripStatus."""
    if isinstance(value, TripStatus):
        return value
    if value is None:
        return None
    key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    return STATUS_SYNONYMS.get(key)


@dataclass
class EpodCaptureResult:
    epod: TripEpod
    trip: Trip
    payment: Optional[Payment]


class TripLifecycleService:

    # Lookups and authorization

    @staticmethod
    async def _get_trip(db: AsyncSession, trip_id: int, lock: bool = False) -> Trip:
        query = select(Trip).where(Trip.id == trip_id).execution_options(populate_existing=True)
        if lock:
            query = query.with_for_update()
        result = await db.execute(query)
        trip = result.scalar_one_or_none()
        if not trip:
            raise ResourceNotFoundError("Trip", trip_id)
        return trip

    @staticmethod
    async def _crew_user_ids(db: AsyncSession, trip: Trip) -> List[Optional[int]]:
        hauler = await db.get(Hauler, trip.hauler_id)
        driver = await db.get(Driver, trip.driver_id) if trip.driver_id else None
        return [hauler.user_id if hauler else None, driver.user_id if driver else None]

    @staticmethod
    async def _assert_crew(db: AsyncSession, trip: Trip, actor: dict):
        owner_ids = await TripLifecycleService._crew_user_ids(db, trip)
        ownership_guard.enforce_any(owner_ids, actor, "trip")

    @staticmethod
    async def _assert_party(db: AsyncSession, trip: Trip, actor: dict):
        """Crew plus the shipper who owns the load."""
        owner_ids = await TripLifecycleService._crew_user_ids(db, trip)
        load = await db.get(Load, trip.load_id)
        owner_ids.append(load.shipper_user_id if load else None)
        ownership_guard.enforce_any(owner_ids, actor, "trip")

    @staticmethod
    async def get_trip(db: AsyncSession, trip_id: int, actor: dict) -> Trip:
        actor = require_actor(actor)
        trip = await TripLifecycleService._get_trip(db, trip_id)
        await TripLifecycleService._assert_party(db, trip, actor)
        return trip

    @staticmethod
    async def get_trip_for_load(db: AsyncSession, load_id: int, actor: dict) -> Trip:
        actor = require_actor(actor)
        result = await db.execute(
            select(Trip).where(Trip.load_id == load_id).order_by(desc(Trip.created_at), desc(Trip.id)).limit(1)
        )
        trip = result.scalar_one_or_none()
        if not trip:
            raise ResourceNotFoundError("Trip for load", load_id)
        await TripLifecycleService._assert_party(db, trip, actor)
        return trip

    # Status

    @staticmethod
    def _apply_status(trip: Trip, load: Optional[Load], target: TripStatus, now: datetime):
        trip.status = target
        if target == TripStatus.EN_ROUTE:
            trip.started_at = trip.started_at or now
            if load is not None:
                load.status = LoadStatus.IN_TRANSIT
                load.started_at = load.started_at or now
        elif target == TripStatus.COMPLETED:
            trip.completed_at = trip.completed_at or now
            if load is not None:
                load.status = LoadStatus.COMPLETED
                load.completed_at = load.completed_at or now

    @staticmethod
    async def transition_status(
        db: AsyncSession,
        trip_id: int,
        requested_status,
        actor: dict,
        publisher: Optional[EventPublisher] = None,
    ) -> Trip:
        """
        Move a trip to a new status, coupling the load's status.

        Requesting the current status is a no-op.

        Raises:
            InvalidStatusError: unrecognized status
            ResourceNotFoundError: no such trip
            ConflictError: transition not allowed from the current status
        """
        actor = require_actor(actor)
        target = normalize_status(requested_status)
        if target is None:
            raise InvalidStatusError(requested_status)

        try:
            trip = await TripLifecycleService._get_trip(db, trip_id, lock=True)
            await TripLifecycleService._assert_crew(db, trip, actor)

            previous = trip.status
            if previous == target:
                await db.commit()
                return trip

            if target not in ALLOWED_TRANSITIONS[previous]:
                raise ConflictError(
                    f"Cannot move trip from {previous.value} to {target.value}",
                    details={"from": previous.value, "to": target.value}
                )

            load = await db.get(Load, trip.load_id, with_for_update=True)
            TripLifecycleService._apply_status(trip, load, target, datetime.now(timezone.utc))
            await db.commit()
        except AppException:
            await db.rollback()
            raise
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("Status change for trip %s failed", trip_id)
            raise InternalError("Trip status update failed") from exc

        await db.refresh(trip)
        await log_actor_event(
            db, AuditAction.TRIP_STATUS_CHANGED, actor, "trip", trip.id,
            {"from": previous.value, "to": target.value}
        )
        if publisher is not None:
            await publisher.publish(EventKind.TRIP_STATUS_CHANGED, {
                "trip_id": trip.id,
                "load_id": trip.load_id,
                "from": previous.value,
                "to": target.value,
            })
        return trip

    @staticmethod
    async def start_trip(db: AsyncSession, trip_id: int, actor: dict,
                         publisher: Optional[EventPublisher] = None) -> Trip:
        return await TripLifecycleService.transition_status(db, trip_id, TripStatus.EN_ROUTE, actor, publisher)

    # Pre-trip check

    @staticmethod
    async def capture_pre_trip_check(
        db: AsyncSession,
        trip_id: int,
        data: PreTripCheckCreate,
        actor: dict,
    ) -> Tuple[PreTripCheck, bool]:
        """
        Save the trip's pre-trip check, replacing any earlier one.

        Returns:
            (check, created)
        """
        actor = require_actor(actor)
        trip = await TripLifecycleService._get_trip(db, trip_id)
        await TripLifecycleService._assert_crew(db, trip, actor)

        if not data.driver_id or not data.truck_id:
            raise InvalidInputError("driver_id and truck_id are required")
        driver = await db.get(Driver, data.driver_id)
        if not driver or driver.hauler_id != trip.hauler_id:
            raise InvalidInputError(
                f"Driver {data.driver_id} is not registered with this trip's hauler",
                details={"driver_id": data.driver_id}
            )
        truck = await db.get(Truck, data.truck_id)
        if not truck or truck.hauler_id != trip.hauler_id:
            raise InvalidInputError(
                f"Truck {data.truck_id} is not registered with this trip's hauler",
                details={"truck_id": data.truck_id}
            )

        fields = data.model_dump(exclude={"checklist_status"})
        fields["checklist_status"] = (data.checklist_status or "COMPLETED").strip().upper()

        result = await db.execute(select(PreTripCheck).where(PreTripCheck.trip_id == trip.id))
        check = result.scalar_one_or_none()
        created = check is None
        if created:
            check = PreTripCheck(trip_id=trip.id, **fields)
            db.add(check)
        else:
            for key, value in fields.items():
                setattr(check, key, value)

        await db.commit()
        await db.refresh(check)

        await log_actor_event(
            db, AuditAction.PRE_TRIP_CHECK_SAVED, actor, "trip", trip.id,
            {"pre_trip_check_id": check.id, "created": created}
        )
        return check, created

    @staticmethod
    async def get_pre_trip_check(db: AsyncSession, trip_id: int, actor: dict) -> PreTripCheck:
        trip = await TripLifecycleService.get_trip(db, trip_id, actor)
        result = await db.execute(select(PreTripCheck).where(PreTripCheck.trip_id == trip.id))
        check = result.scalar_one_or_none()
        if not check:
            raise ResourceNotFoundError("Pre-trip check for trip", trip_id)
        return check

    # ePOD

    @staticmethod
    async def capture_epod(
        db: AsyncSession,
        trip_id: int,
        data: EpodCreate,
        actor: dict,
        publisher: Optional[EventPublisher] = None,
    ) -> EpodCaptureResult:
        """
        Record proof of delivery, complete the trip and load, and release escrow.

        The payment is only released if it was funded; otherwise it is left
        untouched and the result carries no payment.
        """
        actor = require_actor(actor)
        now = datetime.now(timezone.utc)

        try:
            trip = await TripLifecycleService._get_trip(db, trip_id, lock=True)
            await TripLifecycleService._assert_crew(db, trip, actor)
            if trip.status == TripStatus.CANCELLED:
                raise ConflictError(
                    f"Trip {trip_id} was cancelled and cannot record a delivery",
                    details={"status": trip.status.value}
                )

            result = await db.execute(select(TripEpod).where(TripEpod.trip_id == trip.id))
            epod = result.scalar_one_or_none()
            if epod is None:
                epod = TripEpod(trip_id=trip.id)
                db.add(epod)
            epod.delivered_at = data.delivered_at or now
            epod.receiver_name = data.receiver_name
            epod.receiver_signature = data.receiver_signature
            epod.delivery_photos = list(data.delivery_photos or [])
            epod.delivery_notes = data.delivery_notes
            epod.captured_by_user_id = actor["user_id"]

            previous = trip.status
            load = await db.get(Load, trip.load_id, with_for_update=True)
            TripLifecycleService._apply_status(trip, load, TripStatus.COMPLETED, now)

            before = await PaymentLedger.read_by_trip(db, trip.id)
            was_released = before is not None and before.status == PaymentStatus.RELEASED
            payment = await PaymentLedger.release_for_trip(db, trip.id, actor["user_id"])

            await db.commit()
        except AppException:
            await db.rollback()
            raise
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("ePOD capture for trip %s failed", trip_id)
            raise InternalError("ePOD capture failed") from exc

        await db.refresh(epod)
        await db.refresh(trip)
        if payment is not None:
            await db.refresh(payment)

        await log_actor_event(
            db, AuditAction.EPOD_CAPTURED, actor, "trip", trip.id,
            {"epod_id": epod.id, "previous_status": previous.value}
        )
        if payment is not None and not was_released:
            await log_actor_event(
                db, AuditAction.PAYMENT_RELEASED, actor, "payment", payment.id,
                {"trip_id": trip.id, "payout_amount": payment.payout_amount}
            )

        if publisher is not None:
            await publisher.publish(EventKind.TRIP_DELIVERED, {
                "trip": TripResponse.model_validate(trip).model_dump(mode="json"),
                "epod_id": epod.id,
                "payment_id": payment.id if payment else None,
                "payment_status": payment.status.value if payment else None,
            })

        return EpodCaptureResult(epod=epod, trip=trip, payment=payment)

    @staticmethod
    async def get_epod(db: AsyncSession, trip_id: int, actor: dict) -> TripEpod:
        trip = await TripLifecycleService.get_trip(db, trip_id, actor)
        result = await db.execute(select(TripEpod).where(TripEpod.trip_id == trip.id))
        epod = result.scalar_one_or_none()
        if not epod:
            raise ResourceNotFoundError("ePOD for trip", trip_id)
        return epod

    # Expenses

    @staticmethod
    async def record_expense(
        db: AsyncSession,
        trip_id: int,
        data: ExpenseCreate,
        actor: dict,
    ) -> TripExpense:
        """
        Append an expense to a trip.

        An unknown driver id is tolerated: the expense is stored without a
        driver and a warning is logged.
        """
        actor = require_actor(actor)
        trip = await TripLifecycleService._get_trip(db, trip_id)
        await TripLifecycleService._assert_crew(db, trip, actor)

        expense_type = (data.expense_type or "").strip().upper()
        if not expense_type:
            raise InvalidInputError("expense_type is required")

        if data.amount is None or math.isnan(data.amount) or math.isinf(data.amount):
            raise InvalidInputError("amount must be a number", details={"amount": str(data.amount)})

        driver_id = data.driver_id
        if driver_id is not None:
            if driver_id <= 0:
                raise InvalidInputError("driver_id must be a positive integer")
            if not await db.get(Driver, driver_id):
                logger.warning("Expense on trip %s references unknown driver %s; storing without driver",
                               trip.id, driver_id)
                driver_id = None

        expense = TripExpense(
            trip_id=trip.id,
            driver_id=driver_id,
            expense_type=expense_type,
            amount=data.amount,
            currency=(data.currency or settings.default_currency).upper(),
            description=data.description,
            receipt_photo_url=data.receipt_photo_url,
            incurred_at=data.incurred_at or datetime.now(timezone.utc),
        )
        db.add(expense)
        await db.commit()
        await db.refresh(expense)

        await log_actor_event(
            db, AuditAction.EXPENSE_RECORDED, actor, "trip", trip.id,
            {"expense_id": expense.id, "expense_type": expense_type, "amount": expense.amount}
        )
        return expense

    @staticmethod
    async def list_expenses(db: AsyncSession, trip_id: int, actor: dict) -> List[TripExpense]:
        """Expenses newest first by incurred_at, then by creation."""
        trip = await TripLifecycleService.get_trip(db, trip_id, actor)
        result = await db.execute(
            select(TripExpense)
            .where(TripExpense.trip_id == trip.id)
            .order_by(desc(TripExpense.incurred_at), desc(TripExpense.created_at), desc(TripExpense.id))
        )
        return list(result.scalars().all())
