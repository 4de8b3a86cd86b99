"""
Category API Endpoints.
"""

from fastapi import APIRouter

from eshop.backend.core.dependencies import AdminUser, DbSession, RequestId
from eshop.backend.schemas.base import ApiResponse, ResponseMetadata
from eshop.backend.schemas.catalog import CategoryCreate, CategoryResponse
from eshop.backend.services.catalog import CatalogService

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[list[CategoryResponse]],
    summary="List categories",
    description="Categories ordered by name, each with its subcategories.",
)
async def list_categories(
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[list[CategoryResponse]]:
    categories = await CatalogService(db).list_categories()
    return ApiResponse(
        data=[CategoryResponse.model_validate(category) for category in categories],
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.post(
    "",
    response_model=ApiResponse[list[CategoryResponse]],
    status_code=201,
    summary="Create a category or subcategory",
    description="With categoryId a subcategory is created under it. Returns the full tree.",
)
async def create_category(
    data: CategoryCreate,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[list[CategoryResponse]]:
    categories = await CatalogService(db).create_category(data)
    return ApiResponse(
        data=[CategoryResponse.model_validate(category) for category in categories],
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.delete(
    "/{category_id}",
    status_code=204,
    summary="Delete a category",
    description="Subcategories are removed; products keep existing without a category.",
)
async def delete_category(
    category_id: str,
    db: DbSession,
    admin: AdminUser,
) -> None:
    await CatalogService(db).delete_category(category_id)
