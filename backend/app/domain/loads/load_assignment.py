"""
Load Assignment (Domain Logic).

Atomically marks a Load as won by a carrier, provisions its Trip and opens
the escrow Payment.

Flow:
1. Authorize (authenticated shipper or super admin)
2. Lock the Load row (SELECT ... FOR UPDATE)
3. Ownership and status checks
4. Ensure the Trip (idempotent)
5. Transition the Load to matched
6. Open the Payment on the Trip's first creation with a positive offer
7. Commit, then audit and publish ``load.matched``

Either everything in steps 2-6 commits or nothing does. A repeat call for
the carrier that already holds the load is a no-op returning the current
state.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    AppException,
    ConflictError,
    InsufficientPermissionsError,
    InternalError,
    InvalidInputError,
    ResourceNotFoundError,
)
from backend.app.core.guards import SHIPPER_ROLES, actor_role, ownership_guard, require_actor
from backend.app.domain.payments.payment_ledger import PaymentLedger
from backend.app.domain.trips.trip_provisioner import TripProvisioner
from backend.app.models.enums import UserRole
from backend.app.models.load import Load
from backend.app.models.load_enums import LoadStatus, PaymentMode
from backend.app.models.payment import Payment
from backend.app.models.trip import Trip
from backend.app.models.user import User
from backend.app.schemas.load import LoadResponse
from backend.app.schemas.trip import TripResponse
from backend.app.services.audit import AuditAction, log_actor_event
from backend.app.services.events import EventKind, EventPublisher

logger = logging.getLogger("livestock.assignment")


@dataclass
class AssignmentResult:
    load: Load
    trip: Trip
    payment: Optional[Payment]
    newly_assigned: bool


class LoadAssignmentService:

    @staticmethod
    async def _lock_load(db: AsyncSession, load_id: int) -> Optional[Load]:
        result = await db.execute(
            select(Load)
            .where(Load.id == load_id, Load.is_deleted.is_(False))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _validate_carrier(db: AsyncSession, carrier_user_id: int) -> User:
        carrier = await db.get(User, carrier_user_id)
        if not carrier:
            raise ResourceNotFoundError("Carrier", carrier_user_id)
        if carrier.role != UserRole.HAULER or not carrier.is_active:
            raise InvalidInputError(
                "Loads can only be assigned to an active hauler",
                details={"carrier_user_id": carrier_user_id}
            )
        return carrier

    @staticmethod
    async def assign(
        db: AsyncSession,
        load_id: int,
        actor: Optional[dict],
        carrier_user_id: int,
        publisher: Optional[EventPublisher] = None,
    ) -> AssignmentResult:
        """
        Assign a load to the winning carrier.

        Raises:
            AuthenticationError: no actor
            InsufficientPermissionsError: actor is not a shipper, or not this load's shipper
            ResourceNotFoundError: load (or carrier) does not exist
            ConflictError: load already assigned to a different carrier
            InternalError: storage failure; the transaction was rolled back
        """
        actor = require_actor(actor)
        if actor_role(actor) not in SHIPPER_ROLES:
            raise InsufficientPermissionsError("Only shippers can assign loads")

        try:
            load = await LoadAssignmentService._lock_load(db, load_id)
            if not load:
                raise ResourceNotFoundError("Load", load_id)

            ownership_guard.enforce(load.shipper_user_id, actor, "load")

            already_assigned = load.status != LoadStatus.POSTED
            if already_assigned and load.assigned_carrier_user_id != carrier_user_id:
                raise ConflictError(
                    f"Load {load_id} is already assigned",
                    details={"status": load.status.value}
                )

            if not already_assigned:
                await LoadAssignmentService._validate_carrier(db, carrier_user_id)

            trip, trip_created = await TripProvisioner.ensure_trip(db, load, carrier_user_id)

            if not already_assigned:
                load.status = LoadStatus.MATCHED
                load.assigned_carrier_user_id = carrier_user_id
                load.assigned_at = datetime.now(timezone.utc)

            if trip_created and load.offer_price and load.offer_price > 0:
                payment = await PaymentLedger.open(
                    db,
                    trip_id=trip.id,
                    load_id=load.id,
                    payer_user_id=load.shipper_user_id,
                    payee_user_id=carrier_user_id,
                    amount=load.offer_price,
                    currency=load.currency,
                    is_escrow=load.payment_mode != PaymentMode.DIRECT,
                )
            else:
                payment = await PaymentLedger.read_by_trip(db, trip.id)

            await db.commit()

        except AppException:
            await db.rollback()
            raise
        except IntegrityError as exc:
            # A concurrent assignment won the trip or payment insert
            await db.rollback()
            logger.warning("Assignment of load %s lost a race: %s", load_id, exc)
            raise ConflictError(f"Load {load_id} is already assigned") from exc
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("Assignment of load %s failed", load_id)
            raise InternalError("Load assignment failed") from exc

        await db.refresh(load)
        await db.refresh(trip)
        if payment is not None:
            await db.refresh(payment)

        if not already_assigned:
            await log_actor_event(
                db, AuditAction.LOAD_ASSIGNED, actor, "load", load.id,
                {"carrier_user_id": carrier_user_id, "trip_id": trip.id,
                 "payment_id": payment.id if payment else None}
            )
            if publisher is not None:
                await publisher.publish(EventKind.LOAD_MATCHED, {
                    "load": LoadResponse.model_validate(load).model_dump(mode="json"),
                    "trip": TripResponse.model_validate(trip).model_dump(mode="json"),
                    "payment_id": payment.id if payment else None,
                })
            logger.info("Load %s assigned to carrier %s (trip=%s)", load.id, carrier_user_id, trip.id)

        return AssignmentResult(load=load, trip=trip, payment=payment, newly_assigned=not already_assigned)
