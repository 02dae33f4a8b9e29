"""
Pydantic schemas for ServiceRequest.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional
from sos_mecanicos.models.service_request import RequestStatus, ServiceType


class Location(BaseModel):
    """A point with a human readable address."""
    address: str
    lat: float
    lng: float


class ServiceRequestCreate(BaseModel):
    """Schema for creating a service request."""
    service_type: ServiceType
    description: str = Field(min_length=1)
    location: Location
    provider_id: int
    vehicle_id: Optional[int] = None
    origin: Optional[Location] = None
    destination: Optional[Location] = None
    estimated_price: Optional[float] = Field(default=None, ge=0)


class AcceptRequest(BaseModel):
    """Optional price agreed when a provider accepts."""
    estimated_price: Optional[float] = Field(default=None, gt=0)


class ServiceRequest(BaseModel):
    """Schema for service request responses."""
    id: int
    user_id: int
    provider_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    service_type: ServiceType
    description: str
    location: Location
    origin: Optional[Location] = None
    destination: Optional[Location] = None
    status: RequestStatus
    estimated_price: Optional[float] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
