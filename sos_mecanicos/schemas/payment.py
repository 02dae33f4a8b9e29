"""
Pydantic schemas for payments.

The trigger endpoint keeps the camelCase body the web client already sends.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional
from sos_mecanicos.models.payment import PaymentStatus


class PaymentRequest(BaseModel):
    """Body of ``POST /api/payment``."""
    amount: float = Field(gt=0)
    service_type: str = Field(alias="serviceType")
    service_id: int = Field(alias="serviceId")
    provider_id: int = Field(alias="providerId")

    model_config = ConfigDict(populate_by_name=True)


class PaymentIntentResponse(BaseModel):
    client_secret: str = Field(serialization_alias="clientSecret")
    payment_intent_id: str = Field(serialization_alias="paymentIntentId")


class Payment(BaseModel):
    id: int
    payment_intent_id: str
    transfer_id: Optional[str] = None
    amount: float
    platform_fee: float
    provider_amount: float
    currency: str
    service_type: str
    service_id: int
    provider_id: int
    status: PaymentStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
