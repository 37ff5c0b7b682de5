"""
Trip Provisioner (Domain Logic).

Forms the Trip for a freshly won Load. A trip always gets a hauler, truck
and driver: when the carrier has none registered, placeholder records are
created so that assignment never fails for lack of fleet data.

Runs inside the assignment transaction and never commits.
"""

import logging
import time
from typing import Optional, Tuple

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.hauler import Hauler, Truck, Driver
from backend.app.models.load import Load
from backend.app.models.trip import Trip
from backend.app.models.trip_enums import TripStatus, TERMINAL_TRIP_STATUSES
from backend.app.services.rest_stops import build_rest_stop_plan

logger = logging.getLogger("livestock.trips")

AUTO_TRUCK_TYPE = "mixed_livestock"


class TripProvisioner:

    @staticmethod
    async def ensure_hauler(db: AsyncSession, carrier_user_id: int) -> Hauler:
        """The carrier's most recently updated hauler profile, created if absent."""
        result = await db.execute(
            select(Hauler)
            .where(Hauler.user_id == carrier_user_id)
            .order_by(desc(Hauler.updated_at), desc(Hauler.id))
            .limit(1)
        )
        hauler = result.scalar_one_or_none()
        if hauler:
            return hauler

        hauler = Hauler(user_id=carrier_user_id)
        db.add(hauler)
        await db.flush()
        logger.info("Created hauler profile %s for user %s", hauler.id, carrier_user_id)
        return hauler

    @staticmethod
    async def ensure_truck(db: AsyncSession, hauler: Hauler) -> Truck:
        result = await db.execute(
            select(Truck)
            .where(Truck.hauler_id == hauler.id)
            .order_by(desc(Truck.updated_at), desc(Truck.id))
            .limit(1)
        )
        truck = result.scalar_one_or_none()
        if truck:
            return truck

        truck = Truck(
            hauler_id=hauler.id,
            plate_number=f"AUTO-{int(time.time() * 1000)}",
            truck_type=AUTO_TRUCK_TYPE,
            status="active",
        )
        db.add(truck)
        await db.flush()
        logger.info("Created placeholder truck %s for hauler %s", truck.id, hauler.id)
        return truck

    @staticmethod
    async def ensure_driver(db: AsyncSession, hauler: Hauler) -> Driver:
        result = await db.execute(
            select(Driver)
            .where(Driver.hauler_id == hauler.id)
            .order_by(desc(Driver.updated_at), desc(Driver.id))
            .limit(1)
        )
        driver = result.scalar_one_or_none()
        if driver:
            return driver

        driver = Driver(
            hauler_id=hauler.id,
            full_name=f"Auto Driver {hauler.user_id}",
            status="active",
        )
        db.add(driver)
        await db.flush()
        logger.info("Created placeholder driver %s for hauler %s", driver.id, hauler.id)
        return driver

    @staticmethod
    async def find_trip_for_load(db: AsyncSession, load_id: int) -> Optional[Trip]:
        """The load's active trip if any, otherwise its most recent one."""
        result = await db.execute(
            select(Trip)
            .where(Trip.load_id == load_id)
            .order_by(desc(Trip.created_at), desc(Trip.id))
        )
        trips = list(result.scalars().all())
        for trip in trips:
            if trip.status not in TERMINAL_TRIP_STATUSES:
                return trip
        return trips[0] if trips else None

    @staticmethod
    async def ensure_trip(db: AsyncSession, load: Load, carrier_user_id: int) -> Tuple[Trip, bool]:
        """
        Return the load's trip, forming it on first call.

        Returns:
            (trip, created) where created is True only for the call that
            inserted the trip
        """
        existing = await TripProvisioner.find_trip_for_load(db, load.id)
        if existing:
            return existing, False

        hauler = await TripProvisioner.ensure_hauler(db, carrier_user_id)
        truck = await TripProvisioner.ensure_truck(db, hauler)
        driver = await TripProvisioner.ensure_driver(db, hauler)

        trip = Trip(
            load_id=load.id,
            hauler_id=hauler.id,
            truck_id=truck.id,
            driver_id=driver.id,
            status=TripStatus.PLANNED,
            planned_start_at=load.pickup_date,
            route_distance_km=load.distance_km,
            rest_stop_plan=build_rest_stop_plan(load.distance_km),
        )
        db.add(trip)
        await db.flush()

        logger.info("Provisioned trip %s for load %s (hauler=%s, truck=%s, driver=%s)",
                    trip.id, load.id, hauler.id, truck.id, driver.id)
        return trip, True
