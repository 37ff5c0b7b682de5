"""
Trip schemas: trip view, status updates and execution records.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, Optional, List
from backend.app.models.trip_enums import TripStatus


class TripResponse(BaseModel):
    """Schema for trip response."""
    id: int
    load_id: int
    hauler_id: int
    truck_id: Optional[int]
    driver_id: Optional[int]
    status: TripStatus
    planned_start_at: Optional[datetime]
    planned_end_at: Optional[datetime]
    route_distance_km: Optional[float]
    rest_stop_plan: Dict[str, Any] = {}
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime]
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True


class TripStatusUpdate(BaseModel):
    """Requested status. Synonyms such as "in_progress" are accepted."""
    status: str = Field(..., min_length=1)


class PreTripCheckCreate(BaseModel):
    """Pre-trip safety checklist submitted by the crew."""
    driver_id: Optional[int] = None
    truck_id: Optional[int] = None
    checklist_status: Optional[str] = Field(None, max_length=50)
    is_vehicle_clean: Optional[bool] = None
    is_vehicle_roadworthy: Optional[bool] = None
    tyres_ok: Optional[bool] = None
    brakes_ok: Optional[bool] = None
    lights_ok: Optional[bool] = None
    gate_latches_ok: Optional[bool] = None
    ventilation_ok: Optional[bool] = None
    is_animals_fit_to_travel: Optional[bool] = None
    overcrowding_checked: Optional[bool] = None
    water_and_feed_checked: Optional[bool] = None
    odometer_start: Optional[float] = Field(None, ge=0)
    additional_notes: Optional[str] = None


class PreTripCheckResponse(BaseModel):
    id: int
    trip_id: int
    driver_id: int
    truck_id: int
    checklist_status: str
    is_vehicle_clean: Optional[bool]
    is_vehicle_roadworthy: Optional[bool]
    tyres_ok: Optional[bool]
    brakes_ok: Optional[bool]
    lights_ok: Optional[bool]
    gate_latches_ok: Optional[bool]
    ventilation_ok: Optional[bool]
    is_animals_fit_to_travel: Optional[bool]
    overcrowding_checked: Optional[bool]
    water_and_feed_checked: Optional[bool]
    odometer_start: Optional[float]
    additional_notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class EpodCreate(BaseModel):
    """Electronic proof of delivery. Photos are references to already-uploaded files."""
    delivered_at: Optional[datetime] = None
    receiver_name: Optional[str] = Field(None, max_length=255)
    receiver_signature: Optional[str] = None
    delivery_photos: List[str] = []
    delivery_notes: Optional[str] = None


class EpodResponse(BaseModel):
    id: int
    trip_id: int
    delivered_at: Optional[datetime]
    receiver_name: Optional[str]
    receiver_signature: Optional[str]
    delivery_photos: List[str] = []
    delivery_notes: Optional[str]
    captured_by_user_id: Optional[int]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ExpenseCreate(BaseModel):
    """Trip expense. Non-numeric amounts are rejected by validation."""
    driver_id: Optional[int] = None
    expense_type: str = Field(..., max_length=50)
    amount: Optional[float] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    description: Optional[str] = None
    receipt_photo_url: Optional[str] = Field(None, max_length=1000)
    incurred_at: Optional[datetime] = None


class ExpenseResponse(BaseModel):
    id: int
    trip_id: int
    driver_id: Optional[int]
    expense_type: str
    amount: float
    currency: str
    description: Optional[str]
    receipt_photo_url: Optional[str]
    incurred_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class ExpenseListResponse(BaseModel):
    expenses: List[ExpenseResponse]
    total: int
