"""
Vehicle Pydantic schemas.

Defines request and response models for vehicle management.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from rideshare.app.models.vehicle_enums import VehicleType, VehicleStatus


class VehicleCreate(BaseModel):
    """Schema for registering a vehicle."""
    vehicle_type: VehicleType = Field(..., description="Vehicle type")
    model: str = Field(..., min_length=1, max_length=100, description="Vehicle model")
    year: int = Field(..., ge=1900, le=2100, description="Manufacturing year")
    color: str = Field(..., min_length=1, max_length=50, description="Vehicle color")
    license_plate: str = Field(..., min_length=1, max_length=50, description="License plate number")
    capacity: int = Field(..., gt=0, description="Passenger seats")


class VehicleUpdate(BaseModel):
    """Schema for updating a vehicle."""
    vehicle_type: Optional[VehicleType] = None
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    color: Optional[str] = Field(None, min_length=1, max_length=50)
    license_plate: Optional[str] = Field(None, min_length=1, max_length=50)
    capacity: Optional[int] = Field(None, gt=0)
    is_available: Optional[bool] = None
    status: Optional[VehicleStatus] = None


class VehicleResponse(BaseModel):
    """Schema for vehicle response."""
    id: int
    vehicle_type: VehicleType
    model: str
    year: int
    color: str
    license_plate: str
    capacity: int
    is_available: bool
    status: VehicleStatus
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class VehicleListResponse(BaseModel):
    vehicles: List[VehicleResponse]
    total: int
