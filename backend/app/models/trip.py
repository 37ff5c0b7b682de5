"""
Trip database model.

Trips are provisioned exactly once per Load when a carrier wins it.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime, Enum, JSON, Index, text
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.trip_enums import TripStatus

# Enum columns persist member names
_ACTIVE_TRIP = text("status NOT IN ('COMPLETED', 'CANCELLED')")


class Trip(Base):
    """
    Trip model.

    The operational record of a carrier fulfilling a Load, including the
    welfare rest-stop plan computed from the Load's distance.
    """
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    load_id = Column(Integer, ForeignKey('loads.id'), nullable=False, index=True)

    # Carrier resources
    hauler_id = Column(Integer, ForeignKey('haulers.id'), nullable=False, index=True)
    truck_id = Column(Integer, ForeignKey('trucks.id'), nullable=True, index=True)
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=True, index=True)

    # Status
    status = Column(Enum(TripStatus), default=TripStatus.PLANNED, nullable=False, index=True)

    # Plan
    planned_start_at = Column(DateTime(timezone=True), nullable=True)
    planned_end_at = Column(DateTime(timezone=True), nullable=True)
    route_distance_km = Column(Float, nullable=True)
    rest_stop_plan = Column(JSON, nullable=False, default=dict)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # At most one non-terminal trip per load
    __table_args__ = (
        Index('ix_trips_active_load', 'load_id', unique=True,
              postgresql_where=_ACTIVE_TRIP, sqlite_where=_ACTIVE_TRIP),
    )

    def __repr__(self):
        return f"<Trip(id={self.id}, load_id={self.load_id}, status='{self.status.value}')>"
