"""
Checkout Service.

Prices a cart against the catalog and turns it into an order for a
signed-in B2B customer.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.config import get_app_config
from eshop.backend.core.exceptions import ValidationError
from eshop.backend.core.utils import blank_to_none, round_money
from eshop.backend.models.order import Order
from eshop.backend.models.user import User
from eshop.backend.repositories.catalog import ProductRepository
from eshop.backend.schemas.checkout import CartLine, CheckoutContact
from eshop.backend.schemas.order import OrderCreate, OrderItemInput
from eshop.backend.services.base import BaseService
from eshop.backend.services.order import OrderService

CHECKOUT_HISTORY_NOTE = "Objednávka vytvorená cez checkout"


@dataclass
class PricedLine:
    product_id: str
    slug: str
    name: str
    quantity: int
    price: Decimal

    @property
    def line_total(self) -> Decimal:
        return round_money(self.price * self.quantity)


@dataclass
class CartTotals:
    subtotal: Decimal
    vat: Decimal
    total: Decimal
    vat_rate: Decimal


def calculate_cart_totals(lines: list[PricedLine], vat_rate: Decimal | float) -> CartTotals:
    """subtotal = sum(price*qty), vat = subtotal*rate, total = subtotal + vat."""
    rate = Decimal(str(vat_rate))
    subtotal = round_money(sum((line.price * line.quantity for line in lines), Decimal("0")))
    vat = round_money(subtotal * rate)
    return CartTotals(subtotal=subtotal, vat=vat, total=round_money(subtotal + vat), vat_rate=rate)


class CheckoutService(BaseService):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.products = ProductRepository(session)
        self.orders = OrderService(session)

    async def price_cart(self, items: list[CartLine]) -> list[PricedLine]:
        """Resolve cart lines to catalog prices. Repeated products are merged."""
        if not items:
            raise ValidationError("Košík je prázdny.")

        merged: dict[str, PricedLine] = {}
        for line in items:
            product = await self.products.get_by_id_or_slug(line.product.strip())
            if product is None or not product.active:
                raise ValidationError(
                    "Produkt nie je dostupný.",
                    details={"product": line.product},
                )
            if product.id in merged:
                merged[product.id].quantity += line.quantity
            else:
                merged[product.id] = PricedLine(
                    product_id=product.id,
                    slug=product.slug,
                    name=product.name,
                    quantity=line.quantity,
                    price=round_money(product.price),
                )
        return list(merged.values())

    async def quote(self, items: list[CartLine]) -> tuple[list[PricedLine], CartTotals]:
        lines = await self.price_cart(items)
        return lines, calculate_cart_totals(lines, get_app_config().application.checkout.vat_rate)

    async def checkout(
        self,
        customer: User,
        items: list[CartLine],
        contact: CheckoutContact,
    ) -> tuple[Order, CartTotals]:
        """
        Create an order from the cart.

        The order total is the net item sum; VAT is added when the invoice
        is issued. The cart totals are returned for display.
        """
        checkout_config = get_app_config().application.checkout
        lines, totals = await self.quote(items)

        customer_name = (
            blank_to_none(contact.company)
            or blank_to_none(contact.name)
            or blank_to_none(customer.company_name)
            or customer.email
        )
        order = await self.orders.create_order(
            OrderCreate(
                customer_name=customer_name,
                email=customer.email,
                phone=contact.phone,
                address=contact.address,
                company_id=blank_to_none(contact.ico) or customer.ico,
                payment_method=checkout_config.payment_method,
                assigned_to=checkout_config.assigned_to,
                note=contact.note,
                user_id=customer.id,
                items=[
                    OrderItemInput(
                        product_id=line.product_id,
                        name=line.name,
                        quantity=line.quantity,
                        price=float(line.price),
                    )
                    for line in lines
                ],
            ),
            history_note=CHECKOUT_HISTORY_NOTE,
        )
        self._log_operation(
            "Checkout completed",
            external_id=order.external_id,
            user_id=customer.id,
            total=str(totals.total),
        )
        return order, totals
