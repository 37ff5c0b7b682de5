"""
Load schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.load_enums import LoadStatus, PaymentMode
from backend.app.schemas.trip import TripResponse
from backend.app.schemas.payment import PaymentResponse


class LoadCreate(BaseModel):
    """Schema for posting a load."""
    title: Optional[str] = Field(None, max_length=255)
    species: str = Field(..., min_length=1, max_length=100)
    quantity: Optional[int] = Field(None, ge=0)
    weight_kg: Optional[float] = Field(None, ge=0)
    pickup_location: str = Field(..., min_length=1, max_length=500)
    dropoff_location: str = Field(..., min_length=1, max_length=500)
    pickup_date: Optional[datetime] = None
    distance_km: Optional[float] = Field(None, ge=0)
    offer_price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)

    # Free-form so an unknown mode is reported as invalid input rather than a schema error
    payment_mode: Optional[str] = None
    direct_disclaimer_accepted: Optional[bool] = None
    direct_disclaimer_version: Optional[str] = None


class LoadResponse(BaseModel):
    """Schema for displaying a load."""
    id: int
    shipper_user_id: int
    title: Optional[str]
    species: str
    quantity: Optional[int]
    weight_kg: Optional[float]
    pickup_location: str
    dropoff_location: str
    pickup_date: Optional[datetime]
    distance_km: Optional[float]
    offer_price: Optional[float]
    currency: str
    payment_mode: PaymentMode
    direct_disclaimer_version: Optional[str]
    direct_disclaimer_accepted_at: Optional[datetime]
    status: LoadStatus
    assigned_carrier_user_id: Optional[int]
    created_at: datetime
    updated_at: datetime
    assigned_at: Optional[datetime]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True


class LoadListResponse(BaseModel):
    """Schema for a list of loads."""
    loads: List[LoadResponse]
    total: int


class LoadAssignRequest(BaseModel):
    """Schema for assigning a load to a winning carrier."""
    carrier_user_id: int = Field(..., gt=0)


class AssignmentResponse(BaseModel):
    """Outcome of assigning a load: the load, its trip and the escrow payment, if any."""
    load: LoadResponse
    trip: TripResponse
    payment: Optional[PaymentResponse] = None
