"""
Checkout API Endpoints.
"""

from fastapi import APIRouter

from eshop.backend.core.dependencies import CurrentUser, DbSession, RequestId
from eshop.backend.schemas.base import ApiResponse, ResponseMetadata
from eshop.backend.schemas.checkout import (
    CartQuote,
    CartQuoteRequest,
    CartTotals,
    CheckoutRequest,
    CheckoutResponse,
    QuoteLine,
)
from eshop.backend.schemas.order import OrderResponse
from eshop.backend.services.checkout import CheckoutService
from eshop.backend.services.checkout import CartTotals as CartTotalsResult

router = APIRouter()


def _totals(totals: CartTotalsResult) -> CartTotals:
    return CartTotals(
        subtotal=float(totals.subtotal),
        vat=float(totals.vat),
        total=float(totals.total),
        vat_rate=float(totals.vat_rate),
    )


@router.post(
    "/quote",
    response_model=ApiResponse[CartQuote],
    summary="Price a cart",
    description="Catalog prices and totals with VAT. Nothing is stored.",
)
async def quote_cart(
    data: CartQuoteRequest,
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[CartQuote]:
    lines, totals = await CheckoutService(db).quote(data.items)
    quote = CartQuote(
        lines=[
            QuoteLine(
                product_id=line.product_id,
                slug=line.slug,
                name=line.name,
                quantity=line.quantity,
                price=float(line.price),
                line_total=float(line.line_total),
            )
            for line in lines
        ],
        totals=_totals(totals),
    )
    return ApiResponse(data=quote, metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "",
    response_model=ApiResponse[CheckoutResponse],
    status_code=201,
    summary="Place an order",
    description="Turns the cart into an order for the signed-in customer.",
)
async def checkout(
    data: CheckoutRequest,
    db: DbSession,
    request_id: RequestId,
    user: CurrentUser,
) -> ApiResponse[CheckoutResponse]:
    order, totals = await CheckoutService(db).checkout(user, data.items, data.contact)
    return ApiResponse(
        data=CheckoutResponse(order=OrderResponse.model_validate(order), totals=_totals(totals)),
        metadata=ResponseMetadata(request_id=request_id),
    )
