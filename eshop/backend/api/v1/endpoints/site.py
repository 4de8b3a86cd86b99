"""
Site Settings API Endpoints.

Storefront appearance documents and the backoffice menu tree. Reads of the
storefront documents are public; every write requires an admin.
"""

from typing import Any

from fastapi import APIRouter, Body

from eshop.backend.core.dependencies import AdminUser, DbSession, RequestId
from eshop.backend.schemas.base import ApiResponse, ResponseMetadata
from eshop.backend.schemas.settings import (
    AdminMenuItem,
    LinkSettings,
    MenuSettings,
    SiteSettings,
    VisualSettings,
)
from eshop.backend.services.site_settings import SiteSettingsService

router = APIRouter()


@router.get("/visual", response_model=ApiResponse[VisualSettings], summary="Homepage hero")
async def get_visual(db: DbSession, request_id: RequestId) -> ApiResponse[VisualSettings]:
    data = await SiteSettingsService(db).get_visual()
    return ApiResponse(data=data, metadata=ResponseMetadata(request_id=request_id))


@router.post("/visual", response_model=ApiResponse[VisualSettings], summary="Save homepage hero")
async def save_visual(
    data: VisualSettings,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[VisualSettings]:
    saved = await SiteSettingsService(db).save_visual(data)
    return ApiResponse(data=saved, metadata=ResponseMetadata(request_id=request_id))


@router.get("/links", response_model=ApiResponse[LinkSettings], summary="Logo and footer links")
async def get_links(db: DbSession, request_id: RequestId) -> ApiResponse[LinkSettings]:
    data = await SiteSettingsService(db).get_links()
    return ApiResponse(data=data, metadata=ResponseMetadata(request_id=request_id))


@router.post("/links", response_model=ApiResponse[LinkSettings], summary="Save logo and footer links")
async def save_links(
    data: LinkSettings,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[LinkSettings]:
    saved = await SiteSettingsService(db).save_links(data)
    return ApiResponse(data=saved, metadata=ResponseMetadata(request_id=request_id))


@router.get("/menu", response_model=ApiResponse[MenuSettings], summary="Storefront menus")
async def get_menu(db: DbSession, request_id: RequestId) -> ApiResponse[MenuSettings]:
    data = await SiteSettingsService(db).get_menu()
    return ApiResponse(data=data, metadata=ResponseMetadata(request_id=request_id))


@router.post("/menu", response_model=ApiResponse[MenuSettings], summary="Save storefront menus")
async def save_menu(
    data: MenuSettings,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[MenuSettings]:
    saved = await SiteSettingsService(db).save_menu(data)
    return ApiResponse(data=saved, metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/settings",
    response_model=ApiResponse[SiteSettings],
    summary="Combined site settings",
    description="Older document holding the hero and links together.",
)
async def get_site_settings(db: DbSession, request_id: RequestId) -> ApiResponse[SiteSettings]:
    data = await SiteSettingsService(db).get_site_settings()
    return ApiResponse(data=data, metadata=ResponseMetadata(request_id=request_id))


@router.post("/settings", response_model=ApiResponse[SiteSettings], summary="Save combined site settings")
async def save_site_settings(
    data: SiteSettings,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[SiteSettings]:
    saved = await SiteSettingsService(db).save_site_settings(data)
    return ApiResponse(data=saved, metadata=ResponseMetadata(request_id=request_id))


@router.get("/admin-menu", response_model=ApiResponse[list[AdminMenuItem]], summary="Backoffice menu")
async def get_admin_menu(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[list[AdminMenuItem]]:
    menu = await SiteSettingsService(db).get_admin_menu()
    return ApiResponse(data=menu, metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/admin-menu",
    response_model=ApiResponse[list[AdminMenuItem]],
    summary="Save backoffice menu",
    description="The body must be a list of menu sections.",
)
async def save_admin_menu(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
    items: Any = Body(...),
) -> ApiResponse[list[AdminMenuItem]]:
    menu = await SiteSettingsService(db).save_admin_menu(items)
    return ApiResponse(data=menu, metadata=ResponseMetadata(request_id=request_id))
