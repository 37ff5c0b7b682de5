"""
Trip execution records: pre-trip safety check, ePOD and expenses.

Pre-trip checks and ePODs are one-per-trip and upserted by trip id;
expenses are an append-only list scoped to a trip.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, Text, ForeignKey, DateTime, JSON
from sqlalchemy.sql import func
from backend.app.db.session import Base


class PreTripCheck(Base):
    """Roadworthiness and animal-fitness checklist snapshot taken before departure."""
    __tablename__ = "pre_trip_checks"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=False, unique=True, index=True)
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False)
    truck_id = Column(Integer, ForeignKey('trucks.id'), nullable=False)

    checklist_status = Column(String(50), default="COMPLETED", nullable=False)

    # Vehicle
    is_vehicle_clean = Column(Boolean, nullable=True)
    is_vehicle_roadworthy = Column(Boolean, nullable=True)
    tyres_ok = Column(Boolean, nullable=True)
    brakes_ok = Column(Boolean, nullable=True)
    lights_ok = Column(Boolean, nullable=True)
    gate_latches_ok = Column(Boolean, nullable=True)
    ventilation_ok = Column(Boolean, nullable=True)

    # Animals
    is_animals_fit_to_travel = Column(Boolean, nullable=True)
    overcrowding_checked = Column(Boolean, nullable=True)
    water_and_feed_checked = Column(Boolean, nullable=True)

    odometer_start = Column(Float, nullable=True)
    additional_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<PreTripCheck(trip_id={self.trip_id}, status='{self.checklist_status}')>"


class TripEpod(Base):
    """Electronic proof of delivery. Photo references are stored upload URLs."""
    __tablename__ = "trip_epods"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=False, unique=True, index=True)

    delivered_at = Column(DateTime(timezone=True), nullable=True)
    receiver_name = Column(String(255), nullable=True)
    receiver_signature = Column(Text, nullable=True)
    delivery_photos = Column(JSON, nullable=False, default=list)
    delivery_notes = Column(Text, nullable=True)
    captured_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<TripEpod(trip_id={self.trip_id}, receiver='{self.receiver_name}')>"


class TripExpense(Base):
    """Driver-attributable incidental cost (fuel, tolls, washout, feed...)."""
    __tablename__ = "trip_expenses"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=True, index=True)

    expense_type = Column(String(50), nullable=False)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    description = Column(Text, nullable=True)
    receipt_photo_url = Column(String(1000), nullable=True)
    incurred_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<TripExpense(id={self.id}, trip_id={self.trip_id}, type='{self.expense_type}', amount={self.amount})>"
