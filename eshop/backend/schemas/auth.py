"""
Auth Schemas.
"""

from pydantic import AliasChoices, Field

from eshop.backend.schemas.base import CamelModel
from eshop.backend.schemas.user import UserResponse


class CustomerRegister(CamelModel):
    email: str | None = None
    password: str | None = None
    company_name: str | None = None
    ico: str | None = None
    dic: str | None = None
    vat_id: str | None = None


class CustomerLogin(CamelModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AdminLogin(CamelModel):
    """`login` is an email, the admin's company name, or the email local part."""

    login: str = Field(..., min_length=1, validation_alias=AliasChoices("login", "email"))
    password: str = Field(..., min_length=1)
    otp_code: str | None = None


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class AdminLoginResponse(CamelModel):
    """Either a token, or `requiresTwoFactor` asking for the TOTP code."""

    requires_two_factor: bool = False
    access_token: str | None = None
    token_type: str | None = None
    expires_in: int | None = None
    user: UserResponse | None = None
