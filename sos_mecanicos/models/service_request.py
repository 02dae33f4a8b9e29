"""
Service request model for database.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sos_mecanicos.database import Base
from sos_mecanicos.models.profile import UserRole
import enum


class ServiceType(str, enum.Enum):
    """Kind of assistance requested."""
    MECHANIC = "mechanic"
    TOW = "tow"

    @property
    def provider_role(self) -> UserRole:
        return UserRole.MECHANIC if self is ServiceType.MECHANIC else UserRole.TOW


class RequestStatus(str, enum.Enum):
    """Service request status enumeration."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class ServiceRequest(Base):
    """A client's request for assistance, addressed to one provider."""

    __tablename__ = "service_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("veiculos.id", ondelete="SET NULL"), nullable=True)
    service_type = Column(SQLEnum(ServiceType), nullable=False)
    description = Column(String, nullable=False)
    location = Column(JSON, nullable=False)
    origin = Column(JSON, nullable=True)
    destination = Column(JSON, nullable=True)
    status = Column(SQLEnum(RequestStatus), default=RequestStatus.PENDING, nullable=False, index=True)
    estimated_price = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    client = relationship("Profile", foreign_keys=[user_id])
    provider = relationship("Profile", foreign_keys=[provider_id])
    vehicle = relationship("Vehicle")
