"""
Payment model for database.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.sql import func
from sos_mecanicos.database import Base
import enum


class PaymentStatus(str, enum.Enum):
    """Payment status enumeration."""
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class Payment(Base):
    """One split payment per accepted service."""

    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("service_type", "service_id", name="uq_payments_service"),
    )

    id = Column(Integer, primary_key=True, index=True)
    payment_intent_id = Column(String, unique=True, nullable=False, index=True)
    transfer_id = Column(String, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    platform_fee = Column(Numeric(12, 2), nullable=False)
    provider_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String, nullable=False)
    service_type = Column(String, nullable=False)
    service_id = Column(Integer, nullable=False, index=True)
    provider_id = Column(Integer, nullable=False, index=True)
    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
