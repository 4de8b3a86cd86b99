"""
Checkout Schemas.
"""

from pydantic import Field

from eshop.backend.schemas.base import CamelModel
from eshop.backend.schemas.order import OrderResponse


class CartLine(CamelModel):
    product: str = Field(..., min_length=1, description="Product id or slug")
    quantity: int = Field(default=1, ge=1)


class CheckoutContact(CamelModel):
    name: str | None = None
    company: str | None = None
    ico: str | None = None
    phone: str | None = None
    address: str | None = None
    note: str | None = None


class CartQuoteRequest(CamelModel):
    items: list[CartLine] = Field(default_factory=list)


class CheckoutRequest(CamelModel):
    items: list[CartLine] = Field(default_factory=list)
    contact: CheckoutContact = Field(default_factory=CheckoutContact)


class QuoteLine(CamelModel):
    product_id: str
    slug: str
    name: str
    quantity: int
    price: float
    line_total: float


class CartTotals(CamelModel):
    subtotal: float
    vat: float
    total: float
    vat_rate: float


class CartQuote(CamelModel):
    lines: list[QuoteLine]
    totals: CartTotals


class CheckoutResponse(CamelModel):
    order: OrderResponse
    totals: CartTotals
