"""
Pagination Utilities.

Offset pagination for admin list endpoints.
"""

from dataclasses import dataclass
from typing import Any

from fastapi import Query
from pydantic import BaseModel

from eshop.backend.schemas.base import PaginatedResponse, PaginationInfo, ResponseMetadata


@dataclass
class PaginationParams:
    """Pagination parameters extracted from the query string."""

    limit: int
    offset: int


def get_pagination_params(
    limit: int = Query(
        default=20,
        ge=1,
        le=100,
        description="Maximum number of items to return",
    ),
    offset: int = Query(
        default=0,
        ge=0,
        description="Number of items to skip",
    ),
) -> PaginationParams:
    """
    FastAPI dependency for pagination parameters.

    Usage:
        @router.get("/orders")
        async def list_orders(
            pagination: PaginationParams = Depends(get_pagination_params),
        ):
            ...
    """
    return PaginationParams(limit=limit, offset=offset)


def create_paginated_response(
    items: list[Any],
    item_schema: type[BaseModel],
    total: int | None = None,
    limit: int = 20,
    offset: int = 0,
    request_id: str | None = None,
) -> dict[str, Any]:
    """
    Create a standardized paginated response.

    Args:
        items: Model instances or dicts
        item_schema: Schema each item is validated through
        total: Total count of matching items
        limit: Page size limit
        offset: Current offset
        request_id: Request ID for metadata

    Returns:
        Dict matching PaginatedResponse structure
    """
    has_more = total is not None and (offset + len(items)) < total

    validated_items = [
        item_schema.model_validate(item).model_dump(mode="json", by_alias=True)
        for item in items
    ]

    response = PaginatedResponse(
        data=validated_items,
        pagination=PaginationInfo(total=total, limit=limit, offset=offset, has_more=has_more),
        metadata=ResponseMetadata(request_id=request_id),
    )
    return response.model_dump(mode="json")
