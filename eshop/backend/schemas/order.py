"""
Order Schemas.
"""

from datetime import datetime

from pydantic import AliasChoices, Field

from eshop.backend.schemas.base import CamelModel


class OrderItemInput(CamelModel):
    product_id: str | None = None
    name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0)


class OrderCreate(CamelModel):
    """
    New order from the admin panel.

    The older backoffice names (customer, id) are accepted too.
    Status may be an enum value, a Slovak label or a legacy code.
    """

    external_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("externalId", "external_id", "id"),
    )
    customer_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("customerName", "customer_name", "customer"),
    )
    email: str = Field(..., min_length=3, max_length=255)
    phone: str | None = None
    address: str | None = None
    company_id: str | None = None
    status: str | None = None
    payment_method: str | None = None
    invoice_number: str | None = None
    assigned_to: str | None = None
    note: str | None = None
    user_id: str | None = None
    items: list[OrderItemInput] = Field(default_factory=list)


class OrderStatusUpdate(CamelModel):
    status: str = Field(..., min_length=1)
    note: str | None = None


class OrderItemResponse(CamelModel):
    id: str
    product_id: str | None = None
    name: str
    quantity: int
    price: float


class OrderHistoryResponse(CamelModel):
    status: str
    note: str | None = None
    timestamp: datetime


class OrderResponse(CamelModel):
    id: str
    external_id: str
    customer_name: str
    email: str
    phone: str | None = None
    address: str | None = None
    company_id: str | None = None
    status: str
    status_label: str
    total: float
    payment_method: str
    invoice_number: str | None = None
    assigned_to: str | None = None
    note: str | None = None
    user_id: str | None = None
    items: list[OrderItemResponse] = Field(default_factory=list)
    history: list[OrderHistoryResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class OrderStatsResponse(CamelModel):
    total_orders: int
    total_revenue: float
    orders_by_status: dict[str, int]
