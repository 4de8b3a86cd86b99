"""
Order API Endpoints.

Admin order management and the signed-in customer's order history.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query

from eshop.backend.core.dependencies import AdminUser, CurrentUser, DbSession, RequestId
from eshop.backend.core.pagination import (
    PaginationParams,
    create_paginated_response,
    get_pagination_params,
)
from eshop.backend.repositories.order import OrderFilter
from eshop.backend.schemas.base import ApiResponse, ResponseMetadata
from eshop.backend.schemas.order import (
    OrderCreate,
    OrderResponse,
    OrderStatsResponse,
    OrderStatusUpdate,
)
from eshop.backend.services.order import OrderService

router = APIRouter()


@router.get(
    "",
    summary="List orders (paginated)",
    description="Newest first. Search matches customer name, email and order number.",
)
async def list_orders(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
    pagination: PaginationParams = Depends(get_pagination_params),
    status: str | None = Query(default=None, description="Status value, Slovak label or legacy code"),
    user_id: str | None = Query(default=None, alias="userId"),
    date_from: datetime | None = Query(default=None, alias="dateFrom"),
    date_to: datetime | None = Query(default=None, alias="dateTo"),
    search: str | None = Query(default=None, max_length=100),
) -> dict[str, Any]:
    service = OrderService(db)
    orders, total = await service.list_orders(
        OrderFilter(
            status=status,
            user_id=user_id,
            date_from=date_from,
            date_to=date_to,
            search=search,
        ),
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return create_paginated_response(
        items=orders,
        item_schema=OrderResponse,
        total=total,
        limit=pagination.limit,
        offset=pagination.offset,
        request_id=request_id,
    )


@router.post(
    "",
    response_model=ApiResponse[OrderResponse],
    status_code=201,
    summary="Create an order",
)
async def create_order(
    data: OrderCreate,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[OrderResponse]:
    order = await OrderService(db).create_order(data)
    return ApiResponse(
        data=OrderResponse.model_validate(order),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.get(
    "/stats",
    response_model=ApiResponse[OrderStatsResponse],
    summary="Order statistics",
)
async def order_stats(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[OrderStatsResponse]:
    stats = await OrderService(db).stats()
    return ApiResponse(
        data=OrderStatsResponse.model_validate(stats),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.get(
    "/mine",
    response_model=ApiResponse[list[OrderResponse]],
    summary="My orders",
    description="Orders placed by the signed-in customer.",
)
async def my_orders(
    db: DbSession,
    request_id: RequestId,
    user: CurrentUser,
) -> ApiResponse[list[OrderResponse]]:
    orders = await OrderService(db).list_orders_for_user(user.id)
    return ApiResponse(
        data=[OrderResponse.model_validate(order) for order in orders],
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.get(
    "/{order_ref}",
    response_model=ApiResponse[OrderResponse],
    summary="Get an order",
    description="Lookup by order number or id.",
)
async def get_order(
    order_ref: str,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[OrderResponse]:
    order = await OrderService(db).get_order(order_ref)
    return ApiResponse(
        data=OrderResponse.model_validate(order),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.put(
    "/{order_ref}/status",
    response_model=ApiResponse[OrderResponse],
    summary="Change order status",
    description="Appends a history entry.",
)
async def update_order_status(
    order_ref: str,
    data: OrderStatusUpdate,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[OrderResponse]:
    order = await OrderService(db).update_status(order_ref, data.status, data.note)
    return ApiResponse(
        data=OrderResponse.model_validate(order),
        metadata=ResponseMetadata(request_id=request_id),
    )
