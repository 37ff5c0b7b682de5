"""
Carrier-side resource models: Hauler profile, Truck and Driver.

A hauler may register no trucks or drivers at all; trip provisioning then
creates placeholder records so that a trip can always be formed.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.sql import func
from backend.app.db.session import Base


class Hauler(Base):
    """Carrier business profile owned by a HAULER user."""
    __tablename__ = "haulers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    legal_name = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Hauler(id={self.id}, user_id={self.user_id})>"


class Truck(Base):
    """
    Truck registered to a hauler.

    No uniqueness on hauler_id: carriers legitimately run several vehicles.
    """
    __tablename__ = "trucks"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    hauler_id = Column(Integer, ForeignKey('haulers.id'), nullable=False, index=True)

    plate_number = Column(String(100), nullable=False)
    truck_type = Column(String(100), nullable=True)  # e.g. "mixed_livestock", "cattle_pot"
    status = Column(String(50), default="active", nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Truck(id={self.id}, plate='{self.plate_number}', hauler_id={self.hauler_id})>"


class Driver(Base):
    """Driver working for a hauler."""
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    hauler_id = Column(Integer, ForeignKey('haulers.id'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)

    full_name = Column(String(255), nullable=False)
    status = Column(String(50), default="active", nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.full_name}', hauler_id={self.hauler_id})>"
