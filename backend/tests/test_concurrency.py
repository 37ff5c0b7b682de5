"""
Concurrency and atomicity tests for load assignment.

SQLite serializes writers on the shared test connection, so competing
assignments are exercised back to back; the row lock, the active-trip
unique index and the one-payment-per-trip constraint cover true races
on PostgreSQL.
"""

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from backend.app.core.exceptions import ConflictError, InternalError
from backend.app.domain.loads.load_assignment import LoadAssignmentService
from backend.app.domain.payments.payment_ledger import PaymentLedger
from backend.app.domain.trips.trip_provisioner import TripProvisioner
from backend.app.models.load import Load
from backend.app.models.load_enums import LoadStatus
from backend.app.models.hauler import Hauler
from backend.app.models.payment import Payment
from backend.app.models.trip import Trip
from backend.app.models.trip_enums import TripStatus
from backend.app.services.events import EventKind


async def _count(session, model):
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.asyncio
async def test_first_carrier_wins(post_load, assign_load):
    load = await post_load()

    winner = await assign_load(load["id"], carrier_user_id=7)
    loser = await assign_load(load["id"], carrier_user_id=9)
    replay = await assign_load(load["id"], carrier_user_id=7)

    assert winner.status_code == 200
    assert loser.status_code == 409
    assert replay.status_code == 200
    assert replay.json()["load"]["assigned_carrier_user_id"] == 7


@pytest.mark.asyncio
async def test_second_active_trip_for_a_load_is_rejected(db_session, users):
    load = Load(shipper_user_id=5, species="pigs", pickup_location="A", dropoff_location="B")
    hauler = Hauler(user_id=7)
    db_session.add_all([load, hauler])
    await db_session.flush()
    db_session.add(Trip(load_id=load.id, hauler_id=hauler.id, rest_stop_plan={}))
    await db_session.commit()

    db_session.add(Trip(load_id=load.id, hauler_id=hauler.id, rest_stop_plan={}))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_finished_trip_does_not_block_a_new_one(db_session, users):
    load = Load(shipper_user_id=5, species="pigs", pickup_location="A", dropoff_location="B")
    hauler = Hauler(user_id=7)
    db_session.add_all([load, hauler])
    await db_session.flush()
    db_session.add(Trip(load_id=load.id, hauler_id=hauler.id, status=TripStatus.CANCELLED, rest_stop_plan={}))
    db_session.add(Trip(load_id=load.id, hauler_id=hauler.id, rest_stop_plan={}))
    await db_session.commit()

    assert await _count(db_session, Trip) == 2


@pytest.mark.asyncio
async def test_failed_payment_open_rolls_back_assignment(actors, post_load, session_factory, mocker):
    load = await post_load()
    mocker.patch.object(PaymentLedger, "open", side_effect=SQLAlchemyError("disk full"))

    async with session_factory() as session:
        with pytest.raises(InternalError):
            await LoadAssignmentService.assign(session, load["id"], actors["shipper"], 7)

    async with session_factory() as session:
        stored = await session.get(Load, load["id"])
        assert stored.status == LoadStatus.POSTED
        assert stored.assigned_carrier_user_id is None
        assert await _count(session, Trip) == 0
        assert await _count(session, Payment) == 0
        assert await _count(session, Hauler) == 0


@pytest.mark.asyncio
async def test_conflict_leaves_state_unchanged(actors, post_load, session_factory):
    load = await post_load()

    async with session_factory() as session:
        await LoadAssignmentService.assign(session, load["id"], actors["shipper"], 7)

    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await LoadAssignmentService.assign(session, load["id"], actors["shipper"], 9)

    async with session_factory() as session:
        stored = await session.get(Load, load["id"])
        assert stored.assigned_carrier_user_id == 7
        assert await _count(session, Trip) == 1
        assert await _count(session, Payment) == 1


@pytest.mark.asyncio
async def test_duplicate_trip_insert_becomes_conflict(actors, post_load, session_factory, events, mocker):
    """A racing assignment that misses the committed trip hits the active-trip index."""
    load = await post_load()

    async with session_factory() as session:
        await LoadAssignmentService.assign(session, load["id"], actors["shipper"], 7, events)
    matched_before = len(events.of_kind(EventKind.LOAD_MATCHED))

    mocker.patch.object(TripProvisioner, "find_trip_for_load", return_value=None)
    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await LoadAssignmentService.assign(session, load["id"], actors["shipper"], 7, events)

    async with session_factory() as session:
        stored = await session.get(Load, load["id"])
        assert stored.status == LoadStatus.MATCHED
        assert stored.assigned_carrier_user_id == 7
        assert await _count(session, Trip) == 1
        assert await _count(session, Payment) == 1
    assert len(events.of_kind(EventKind.LOAD_MATCHED)) == matched_before
