"""
Profile model for database.
"""
from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, Float, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sos_mecanicos.database import Base
import enum


class UserRole(str, enum.Enum):
    """User role enumeration. Fixed at sign-up."""
    CLIENT = "client"
    MECHANIC = "mechanic"
    TOW = "tow"
    INSURER = "insurer"

    @property
    def is_provider(self) -> bool:
        return self in (UserRole.MECHANIC, UserRole.TOW)


class Profile(Base):
    """Account and public profile of any marketplace user."""

    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    full_name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    role = Column(SQLEnum(UserRole), nullable=False, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    distance_km = Column(Float, nullable=True)
    stripe_account_id = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    reset_token = Column(String, unique=True, nullable=True)
    reset_token_expiration = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    vehicles = relationship("Vehicle", back_populates="owner", cascade="all, delete-orphan")


class RevokedToken(Base):
    """Access tokens invalidated by sign-out."""

    __tablename__ = "revoked_tokens"

    jti = Column(String, primary_key=True)
    revoked_at = Column(DateTime(timezone=True), server_default=func.now())
