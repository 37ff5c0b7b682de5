"""
Load database model.

A Load is a freight request posted by a shipper and won by exactly one carrier.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.load_enums import LoadStatus, PaymentMode


class Load(Base):
    """
    Load model.

    Mutated only by the assignment orchestrator and the trip lifecycle.
    Never physically deleted: ``is_deleted`` hides it from reads.
    """
    __tablename__ = "loads"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership - Load belongs to the shipper who posted it
    shipper_user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    # Freight
    title = Column(String(255), nullable=True)
    species = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=True)
    weight_kg = Column(Float, nullable=True)

    # Route descriptors
    pickup_location = Column(String(500), nullable=False)
    dropoff_location = Column(String(500), nullable=False)
    pickup_date = Column(DateTime(timezone=True), nullable=True)
    distance_km = Column(Float, nullable=True)

    # Commercials
    offer_price = Column(Float, nullable=True)
    currency = Column(String(3), nullable=False, default="USD")
    payment_mode = Column(Enum(PaymentMode), default=PaymentMode.ESCROW, nullable=False)
    direct_disclaimer_version = Column(String(50), nullable=True)
    direct_disclaimer_accepted_at = Column(DateTime(timezone=True), nullable=True)

    # Status and assignment
    status = Column(Enum(LoadStatus), default=LoadStatus.POSTED, nullable=False, index=True)
    assigned_carrier_user_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)

    # Soft delete
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    assigned_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Load(id={self.id}, status='{self.status.value}', carrier={self.assigned_carrier_user_id})>"
