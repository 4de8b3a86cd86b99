"""
Product API Endpoints.

Public catalog reads and admin product management.
"""

from fastapi import APIRouter, Query

from eshop.backend.core.dependencies import AdminUser, DbSession, RequestId
from eshop.backend.schemas.base import ApiResponse, ResponseMetadata
from eshop.backend.schemas.catalog import ProductCreate, ProductResponse, ProductUpdate
from eshop.backend.services.catalog import CatalogService

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[list[ProductResponse]],
    summary="List products",
    description="Catalog listing filtered by category name and a text query.",
)
async def list_products(
    db: DbSession,
    request_id: RequestId,
    category: str | None = Query(default=None, description="Category name"),
    q: str | None = Query(default=None, max_length=100, description="Search in name, tagline, description"),
    limit: int | None = Query(default=None, ge=1, le=500),
    active_only: bool = Query(default=False, alias="activeOnly"),
) -> ApiResponse[list[ProductResponse]]:
    service = CatalogService(db)
    products = await service.list_products(category=category, query=q, limit=limit, active_only=active_only)
    return ApiResponse(
        data=[ProductResponse.model_validate(product) for product in products],
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.post(
    "",
    response_model=ApiResponse[ProductResponse],
    status_code=201,
    summary="Create a product",
)
async def create_product(
    data: ProductCreate,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[ProductResponse]:
    product = await CatalogService(db).create_product(data)
    return ApiResponse(
        data=ProductResponse.model_validate(product),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.get(
    "/{product_ref}",
    response_model=ApiResponse[ProductResponse],
    summary="Get a product",
    description="Lookup by id or slug.",
)
async def get_product(
    product_ref: str,
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[ProductResponse]:
    product = await CatalogService(db).get_product(product_ref)
    return ApiResponse(
        data=ProductResponse.model_validate(product),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.put(
    "/{product_ref}",
    response_model=ApiResponse[ProductResponse],
    summary="Update a product",
    description="Only provided fields change. Blank text fields are cleared.",
)
async def update_product(
    product_ref: str,
    data: ProductUpdate,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[ProductResponse]:
    product = await CatalogService(db).update_product(product_ref, data)
    return ApiResponse(
        data=ProductResponse.model_validate(product),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.delete(
    "/{product_ref}",
    status_code=204,
    summary="Delete a product",
)
async def delete_product(
    product_ref: str,
    db: DbSession,
    admin: AdminUser,
) -> None:
    await CatalogService(db).delete_product(product_ref)
