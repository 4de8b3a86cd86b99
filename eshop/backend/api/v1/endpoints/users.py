"""
User API Endpoints.

Admin user management and two-factor setup.
"""

from fastapi import APIRouter, Query

from eshop.backend.core.dependencies import AdminUser, DbSession, RequestId
from eshop.backend.schemas.base import ApiResponse, ResponseMetadata
from eshop.backend.schemas.user import (
    TwoFactorEnable,
    TwoFactorSetup,
    TwoFactorStatus,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from eshop.backend.services.user import UserService

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[list[UserResponse]],
    summary="List users",
    description="Newest first, optionally filtered by role.",
)
async def list_users(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
    role: str | None = Query(default=None, pattern="^(user|admin)$"),
) -> ApiResponse[list[UserResponse]]:
    users = await UserService(db).list_users(role)
    return ApiResponse(
        data=[UserResponse.model_validate(user) for user in users],
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.post(
    "",
    response_model=ApiResponse[UserResponse],
    status_code=201,
    summary="Create a user",
)
async def create_user(
    data: UserCreate,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[UserResponse]:
    user = await UserService(db).create_user(data)
    return ApiResponse(data=UserResponse.model_validate(user), metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserResponse],
    summary="Get a user",
)
async def get_user(
    user_id: str,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[UserResponse]:
    user = await UserService(db).get_user(user_id)
    return ApiResponse(data=UserResponse.model_validate(user), metadata=ResponseMetadata(request_id=request_id))


@router.put(
    "/{user_id}",
    response_model=ApiResponse[UserResponse],
    summary="Update a user",
    description="Only provided fields change. A new password is rehashed.",
)
async def update_user(
    user_id: str,
    data: UserUpdate,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[UserResponse]:
    user = await UserService(db).update_user(user_id, data)
    return ApiResponse(data=UserResponse.model_validate(user), metadata=ResponseMetadata(request_id=request_id))


@router.delete(
    "/{user_id}",
    status_code=204,
    summary="Delete a user",
)
async def delete_user(
    user_id: str,
    db: DbSession,
    admin: AdminUser,
) -> None:
    await UserService(db).delete_user(user_id)


@router.get(
    "/{user_id}/2fa",
    response_model=ApiResponse[TwoFactorSetup],
    summary="Generate a two-factor secret",
    description="Returns a new secret and otpauth URL. Nothing is stored until enabled.",
)
async def generate_two_factor(
    user_id: str,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[TwoFactorSetup]:
    setup = await UserService(db).generate_2fa(user_id)
    return ApiResponse(data=TwoFactorSetup(**setup), metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/{user_id}/2fa",
    response_model=ApiResponse[TwoFactorStatus],
    summary="Enable two-factor",
)
async def enable_two_factor(
    user_id: str,
    data: TwoFactorEnable,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[TwoFactorStatus]:
    user = await UserService(db).enable_2fa(user_id, data.secret, data.code)
    return ApiResponse(
        data=TwoFactorStatus(two_factor_enabled=user.two_factor_enabled),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.delete(
    "/{user_id}/2fa",
    response_model=ApiResponse[TwoFactorStatus],
    summary="Disable two-factor",
)
async def disable_two_factor(
    user_id: str,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[TwoFactorStatus]:
    user = await UserService(db).disable_2fa(user_id)
    return ApiResponse(
        data=TwoFactorStatus(two_factor_enabled=user.two_factor_enabled),
        metadata=ResponseMetadata(request_id=request_id),
    )
