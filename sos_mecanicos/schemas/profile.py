"""
Pydantic schemas for profiles and authentication.
"""
from pydantic import BaseModel, EmailStr, ConfigDict, Field
from datetime import datetime
from typing import Optional
from sos_mecanicos.models.profile import UserRole


class ProfileBase(BaseModel):
    """Base profile schema with common fields."""
    email: EmailStr
    full_name: str = Field(min_length=1)
    phone: Optional[str] = None
    role: UserRole


class SignUpRequest(ProfileBase):
    """Schema for creating an account."""
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    """Schema for login request."""
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(min_length=6)


class UpdatePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)


class ProfileUpdate(BaseModel):
    """Schema for updating the caller's profile."""
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    stripe_account_id: Optional[str] = None


class Profile(ProfileBase):
    """Schema for profile responses."""
    id: int
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    stripe_account_id: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProviderSummary(BaseModel):
    """Public view of a mechanic or tow operator."""
    id: int
    full_name: str
    role: UserRole
    phone: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance_km: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class SessionInfo(BaseModel):
    """Schema for the current session."""
    user_id: int
    email: str
    display_name: str
    role: UserRole
    dashboard_path: str


class Token(BaseModel):
    """Schema for authentication token."""
    access_token: str
    token_type: str = "bearer"
    session: SessionInfo
