"""
Vehicle model for database.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sos_mecanicos.database import Base
import enum


class VehicleStatus(str, enum.Enum):
    """Vehicle status enumeration."""
    ACTIVE = "ativo"
    INACTIVE = "inativo"
    MAINTENANCE = "manutencao"


class Vehicle(Base):
    """Vehicle database model."""

    __tablename__ = "veiculos"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    plate = Column(String, unique=True, nullable=False, index=True)
    brand = Column(String, nullable=True)
    model = Column(String, nullable=False)
    year = Column(Integer, nullable=False)
    color = Column(String, nullable=True)
    mileage = Column(Integer, nullable=False, default=0)
    status = Column(SQLEnum(VehicleStatus), default=VehicleStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    owner = relationship("Profile", back_populates="vehicles")
