"""
User Schemas.

Admin user management and two-factor setup. Password hashes and TOTP
secrets never leave the backend through these models.
"""

from datetime import datetime

from pydantic import Field

from eshop.backend.models.user import UserRole
from eshop.backend.schemas.base import CamelModel


class UserCreate(CamelModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)
    company_name: str = Field(..., min_length=1, max_length=255)
    ico: str | None = None
    dic: str | None = None
    vat_id: str | None = None
    role: UserRole = UserRole.USER


class UserUpdate(CamelModel):
    """Partial update. Omitted fields stay unchanged."""

    email: str | None = Field(default=None, min_length=3, max_length=255)
    password: str | None = None
    company_name: str | None = Field(default=None, max_length=255)
    ico: str | None = None
    dic: str | None = None
    vat_id: str | None = None
    role: UserRole | None = None


class UserResponse(CamelModel):
    id: str
    email: str
    company_name: str
    ico: str | None = None
    dic: str | None = None
    vat_id: str | None = None
    role: str
    two_factor_enabled: bool
    created_at: datetime
    updated_at: datetime


class TwoFactorSetup(CamelModel):
    secret: str
    otpauth_url: str
    two_factor_enabled: bool


class TwoFactorEnable(CamelModel):
    secret: str = Field(..., min_length=16)
    code: str = Field(..., min_length=6, max_length=8)


class TwoFactorStatus(CamelModel):
    two_factor_enabled: bool
