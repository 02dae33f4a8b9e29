"""
Pydantic schemas for contact forms.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class SupportTicketCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    subject: str = Field(min_length=1)
    message: str = Field(min_length=1)


class PartnerApplicationCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    partner_type: str = Field(min_length=1)
    message: str = Field(min_length=1)


class JobApplicationCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    position: str = Field(min_length=1)
    message: Optional[str] = None


class ContactReceipt(BaseModel):
    id: int
    message: str
