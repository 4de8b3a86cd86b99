"""
Base Schemas.

Response envelope shared by every endpoint, plus the camelCase base model
used for request and response bodies consumed by the storefront and admin UI.
"""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from eshop.backend.core.utils import utc_now

DataT = TypeVar("DataT")


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input, serializes as camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        serialize_by_alias=True,
    )


class ResponseMetadata(BaseModel):
    """Metadata included in all API responses."""

    timestamp: datetime = Field(default_factory=utc_now)
    request_id: str | None = None


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str
    message: str
    details: dict[str, Any] | None = None


class ApiResponse(BaseModel, Generic[DataT]):
    """Standard API response envelope."""

    success: bool = True
    data: DataT | None = None
    error: ErrorDetail | None = None
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)

    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    data: None = None
    error: ErrorDetail
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


class PaginationInfo(BaseModel):
    """Pagination metadata."""

    total: int | None = None
    limit: int
    offset: int = 0
    has_more: bool = False


class PaginatedResponse(BaseModel, Generic[DataT]):
    """Paginated list response."""

    success: bool = True
    data: list[DataT]
    error: None = None
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)
    pagination: PaginationInfo
