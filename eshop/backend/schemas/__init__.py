# Pydantic schemas package
from eshop.backend.schemas.base import (
    ApiResponse,
    CamelModel,
    ErrorDetail,
    ErrorResponse,
    PaginatedResponse,
    ResponseMetadata,
)

__all__ = [
    "ApiResponse",
    "CamelModel",
    "ErrorDetail",
    "ErrorResponse",
    "PaginatedResponse",
    "ResponseMetadata",
]
