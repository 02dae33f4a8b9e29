"""
Pydantic schemas for insurance quotes and plans.
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime
from typing import List, Optional
from sos_mecanicos.models.insurance import QuoteStatus


class InsuranceQuoteCreate(BaseModel):
    client_email: EmailStr
    vehicle_model: str = Field(min_length=1)
    quote_value: float = Field(gt=0)


class InsuranceQuoteUpdate(BaseModel):
    status: QuoteStatus


class InsuranceQuote(BaseModel):
    id: int
    insurer_id: int
    client_email: str
    vehicle_model: str
    quote_value: float
    status: QuoteStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InsurancePlanCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    included_items: List[str] = []
    monthly_price: float = Field(gt=0)
    grace_period_days: int = Field(default=0, ge=0)
    coverage_time: Optional[str] = None
    accepts_agreements: bool = False
    accepted_agreements: List[str] = []


class InsurancePlan(InsurancePlanCreate):
    id: int
    created_by: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
