"""
Auth API Endpoints.

Customer registration and login, admin login with optional TOTP, and the
current-user lookup.
"""

from fastapi import APIRouter

from eshop.backend.core.dependencies import AdminUser, CurrentUser, DbSession, RequestId
from eshop.backend.schemas.auth import (
    AdminLogin,
    AdminLoginResponse,
    CustomerLogin,
    CustomerRegister,
    TokenResponse,
)
from eshop.backend.schemas.base import ApiResponse, ResponseMetadata
from eshop.backend.schemas.user import UserResponse
from eshop.backend.services.auth import AuthService, IssuedToken

router = APIRouter()


def _token_response(issued: IssuedToken) -> TokenResponse:
    return TokenResponse(
        access_token=issued.access_token,
        expires_in=issued.expires_in,
        user=UserResponse.model_validate(issued.user),
    )


@router.post(
    "/customer/register",
    response_model=ApiResponse[TokenResponse],
    status_code=201,
    summary="Register a B2B customer",
)
async def register_customer(
    data: CustomerRegister,
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[TokenResponse]:
    issued = await AuthService(db).register_customer(data)
    return ApiResponse(data=_token_response(issued), metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/customer/login",
    response_model=ApiResponse[TokenResponse],
    summary="Customer login",
)
async def login_customer(
    data: CustomerLogin,
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[TokenResponse]:
    issued = await AuthService(db).login_customer(data.email, data.password)
    return ApiResponse(data=_token_response(issued), metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/admin/login",
    response_model=ApiResponse[AdminLoginResponse],
    summary="Admin login",
    description=(
        "Login by email, company name or email local part. With two-factor "
        "enabled, a call without otpCode returns requiresTwoFactor and no token."
    ),
)
async def login_admin(
    data: AdminLogin,
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[AdminLoginResponse]:
    result = await AuthService(db).login_admin(data.login, data.password, data.otp_code)
    if result.token is None:
        body = AdminLoginResponse(requires_two_factor=True)
    else:
        body = AdminLoginResponse(
            access_token=result.token.access_token,
            token_type="bearer",
            expires_in=result.token.expires_in,
            user=UserResponse.model_validate(result.token.user),
        )
    return ApiResponse(data=body, metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/me",
    response_model=ApiResponse[UserResponse],
    summary="Current user",
)
async def me(user: CurrentUser, request_id: RequestId) -> ApiResponse[UserResponse]:
    return ApiResponse(data=UserResponse.model_validate(user), metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/admins",
    response_model=ApiResponse[list[UserResponse]],
    summary="List administrators",
)
async def list_admins(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[list[UserResponse]]:
    admins = await AuthService(db).list_admins()
    return ApiResponse(
        data=[UserResponse.model_validate(user) for user in admins],
        metadata=ResponseMetadata(request_id=request_id),
    )
