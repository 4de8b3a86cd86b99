"""
Order Service.

Order creation, status workflow and reporting.
"""

import secrets
import string
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.exceptions import ConflictError, NotFoundError, ValidationError
from eshop.backend.core.utils import blank_to_none, round_money, utc_now
from eshop.backend.models.order import (
    Order,
    OrderHistory,
    OrderItem,
    OrderStatus,
    parse_order_status,
)
from eshop.backend.repositories.order import OrderFilter, OrderRepository
from eshop.backend.schemas.order import OrderCreate
from eshop.backend.services.base import BaseService

ORDER_CREATED_NOTE = "Objednávka vytvorená"

_EXTERNAL_ID_ALPHABET = string.ascii_uppercase + string.digits
_EXTERNAL_ID_ATTEMPTS = 5


def generate_external_id() -> str:
    """ORD-{YYYYMM}-{6 random uppercase letters/digits}."""
    suffix = "".join(secrets.choice(_EXTERNAL_ID_ALPHABET) for _ in range(6))
    return f"ORD-{utc_now():%Y%m}-{suffix}"


def calculate_order_total(items: list[tuple[Decimal | float, int]]) -> Decimal:
    """Sum of price * quantity, rounded to cents."""
    return round_money(sum((Decimal(str(price)) * qty for price, qty in items), Decimal("0")))


class OrderService(BaseService):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = OrderRepository(session)

    async def _new_external_id(self) -> str:
        for _ in range(_EXTERNAL_ID_ATTEMPTS):
            candidate = generate_external_id()
            if not await self.repo.external_id_exists(candidate):
                return candidate
        raise ConflictError("Nepodarilo sa vygenerovať číslo objednávky.")

    async def create_order(self, data: OrderCreate, history_note: str | None = None) -> Order:
        """
        Create an order with its items and a first history entry.

        The total is always computed from the items.
        """
        if not data.items:
            raise ValidationError("Objednávka musí obsahovať aspoň jednu položku.")

        external_id = blank_to_none(data.external_id)
        if external_id and await self.repo.external_id_exists(external_id):
            raise ConflictError("Objednávka s týmto číslom už existuje.")
        external_id = external_id or await self._new_external_id()

        status = parse_order_status(data.status) if data.status else OrderStatus.NEW
        total = calculate_order_total([(item.price, item.quantity) for item in data.items])

        items = [
            OrderItem(
                position=index,
                product_id=item.product_id,
                name=item.name.strip(),
                quantity=item.quantity,
                price=round_money(item.price),
            )
            for index, item in enumerate(data.items)
        ]
        history = [OrderHistory(status=status, note=history_note or ORDER_CREATED_NOTE)]

        self._log_operation("Creating order", external_id=external_id, items=len(items), total=str(total))
        order = await self._execute_db_operation(
            "create_order",
            self.repo.create(
                external_id=external_id,
                customer_name=data.customer_name.strip(),
                email=data.email.strip().lower(),
                phone=blank_to_none(data.phone),
                address=blank_to_none(data.address),
                company_id=blank_to_none(data.company_id),
                status=status,
                total=total,
                payment_method=blank_to_none(data.payment_method) or "unspecified",
                invoice_number=blank_to_none(data.invoice_number),
                assigned_to=blank_to_none(data.assigned_to),
                note=blank_to_none(data.note),
                user_id=blank_to_none(data.user_id),
                items=items,
                history=history,
            ),
            conflict_message="Objednávka s týmto číslom už existuje.",
        )
        self._log_debug("Order created", order_id=order.id)
        return order

    async def list_orders(
        self,
        filters: OrderFilter,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Order], int]:
        if filters.status:
            filters.status = parse_order_status(filters.status)
        return await self.repo.search(filters, limit=limit, offset=offset)

    async def get_order(self, ref: str) -> Order:
        """Order by external number or internal id."""
        order = await self.repo.get_by_reference(ref)
        if order is None:
            raise NotFoundError("Objednávka neexistuje.")
        return order

    async def update_status(self, ref: str, status: str, note: str | None = None) -> Order:
        """Set a new status and record it in the history."""
        order = await self.get_order(ref)
        new_status = parse_order_status(status)

        self._log_operation(
            "Updating order status",
            external_id=order.external_id,
            old_status=order.status,
            new_status=new_status,
        )
        order.status = new_status
        order.history.append(OrderHistory(status=new_status, note=blank_to_none(note)))
        return await self._execute_db_operation(
            "update_order_status",
            self.repo.update_instance(order),
        )

    async def list_orders_for_user(self, user_id: str) -> list[Order]:
        return await self.repo.list_for_user(user_id)

    async def stats(self) -> dict:
        """Order count, revenue and a count for every status (zero when absent)."""
        by_status = {status.value: 0 for status in OrderStatus}
        for status, count in (await self.repo.count_by_status()).items():
            key = parse_order_status(status).value
            by_status[key] += count

        return {
            "total_orders": sum(by_status.values()),
            "total_revenue": float(round_money(await self.repo.revenue_total())),
            "orders_by_status": by_status,
        }
