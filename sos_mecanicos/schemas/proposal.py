"""
Pydantic schemas for provider proposals.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional
from sos_mecanicos.models.proposal import ProposalStatus
from sos_mecanicos.schemas.payment import PaymentIntentResponse


class ProposalCreate(BaseModel):
    service_request_id: int
    original_value: float = Field(gt=0)
    description: str = Field(min_length=1)


class Proposal(BaseModel):
    id: int
    service_request_id: int
    provider_id: int
    client_id: int
    original_value: float
    platform_fee: float
    total_value: float
    description: str
    status: ProposalStatus
    payment_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProposalAccepted(BaseModel):
    """Accepted proposal plus the intent the client confirms to pay."""
    proposal: Proposal
    payment: PaymentIntentResponse
