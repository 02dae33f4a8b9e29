"""
Pydantic schemas for Vehicle.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional
from sos_mecanicos.models.vehicle import VehicleStatus


class VehicleBase(BaseModel):
    """Base vehicle schema with common fields."""
    plate: str = Field(min_length=1)
    brand: Optional[str] = None
    model: str = Field(min_length=1)
    year: int
    color: Optional[str] = None
    mileage: int = Field(default=0, ge=0)
    status: VehicleStatus = VehicleStatus.ACTIVE


class VehicleCreate(VehicleBase):
    """Schema for creating a vehicle."""
    pass


class VehicleUpdate(BaseModel):
    """Schema for updating a vehicle."""
    plate: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None
    mileage: Optional[int] = Field(default=None, ge=0)
    status: Optional[VehicleStatus] = None


class Vehicle(VehicleBase):
    """Schema for vehicle responses."""
    id: int
    owner_id: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
