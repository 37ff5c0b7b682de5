"""
Load board operations: post, read, list and soft-delete loads.
"""

from typing import List, Optional

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import ConflictError, InsufficientPermissionsError, ResourceNotFoundError
from backend.app.core.guards import SHIPPER_ROLES, actor_role, ownership_guard, require_actor
from backend.app.domain.loads.payment_mode import resolve_payment_mode_selection
from backend.app.models.load import Load
from backend.app.models.load_enums import LoadStatus
from backend.app.schemas.load import LoadCreate

MAX_LIST_SIZE = 200


class LoadService:

    @staticmethod
    async def create_load(db: AsyncSession, actor: dict, data: LoadCreate) -> Load:
        actor = require_actor(actor)
        if actor_role(actor) not in SHIPPER_ROLES:
            raise InsufficientPermissionsError("Only shippers can post loads")

        selection = resolve_payment_mode_selection(
            data.payment_mode,
            data.direct_disclaimer_accepted,
            data.direct_disclaimer_version,
        )

        load = Load(
            shipper_user_id=actor["user_id"],
            title=data.title,
            species=data.species.strip(),
            quantity=data.quantity,
            weight_kg=data.weight_kg,
            pickup_location=data.pickup_location,
            dropoff_location=data.dropoff_location,
            pickup_date=data.pickup_date,
            distance_km=data.distance_km,
            offer_price=data.offer_price,
            currency=(data.currency or settings.default_currency).upper(),
            payment_mode=selection.payment_mode,
            direct_disclaimer_version=selection.direct_disclaimer_version,
            direct_disclaimer_accepted_at=selection.direct_disclaimer_accepted_at,
            status=LoadStatus.POSTED,
        )
        db.add(load)
        await db.commit()
        await db.refresh(load)
        return load

    @staticmethod
    async def get_load(db: AsyncSession, load_id: int) -> Load:
        result = await db.execute(
            select(Load).where(Load.id == load_id, Load.is_deleted.is_(False))
        )
        load = result.scalar_one_or_none()
        if not load:
            raise ResourceNotFoundError("Load", load_id)
        return load

    @staticmethod
    async def list_loads(
        db: AsyncSession,
        status: Optional[LoadStatus] = None,
        shipper_user_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[Load]:
        """Non-deleted loads, newest first."""
        query = select(Load).where(Load.is_deleted.is_(False))
        if status is not None:
            query = query.where(Load.status == status)
        if shipper_user_id is not None:
            query = query.where(Load.shipper_user_id == shipper_user_id)

        query = query.order_by(desc(Load.created_at), desc(Load.id)).limit(min(max(limit, 1), MAX_LIST_SIZE))
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def delete_load(db: AsyncSession, load_id: int, actor: dict) -> Load:
        """Hide a load from the board. Only loads still open for bids can be withdrawn."""
        actor = require_actor(actor)
        load = await LoadService.get_load(db, load_id)
        ownership_guard.enforce(load.shipper_user_id, actor, "load")

        if load.status != LoadStatus.POSTED:
            raise ConflictError(
                f"Load {load_id} is {load.status.value} and can no longer be withdrawn",
                details={"status": load.status.value}
            )

        load.is_deleted = True
        await db.commit()
        await db.refresh(load)
        return load
