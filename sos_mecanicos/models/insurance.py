"""
Insurance quote and plan models for database.
"""
from sqlalchemy import Boolean, Column, Integer, String, Numeric, DateTime, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
from sos_mecanicos.database import Base
import enum


class QuoteStatus(str, enum.Enum):
    """Insurance quote status enumeration."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class InsuranceQuote(Base):
    """Quote issued by an insurer for a client's vehicle."""

    __tablename__ = "insurance_quotes"

    id = Column(Integer, primary_key=True, index=True)
    insurer_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    client_email = Column(String, nullable=False)
    vehicle_model = Column(String, nullable=False)
    quote_value = Column(Numeric(12, 2), nullable=False)
    status = Column(SQLEnum(QuoteStatus), default=QuoteStatus.PENDING, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class InsurancePlan(Base):
    """Coverage plan published by an insurer."""

    __tablename__ = "planos_seguradora"

    id = Column(Integer, primary_key=True, index=True)
    created_by = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=False)
    included_items = Column(JSON, nullable=False, default=list)
    monthly_price = Column(Numeric(12, 2), nullable=False)
    grace_period_days = Column(Integer, nullable=False, default=0)
    coverage_time = Column(String, nullable=True)
    accepts_agreements = Column(Boolean, nullable=False, default=False)
    accepted_agreements = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
