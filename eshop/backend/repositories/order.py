"""
Order Repository.

Order queries: filtered listing, lookups by number, revenue statistics.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Select, func, or_, select

from eshop.backend.models.order import Order
from eshop.backend.repositories.base import BaseRepository


@dataclass
class OrderFilter:
    """Admin order list filter. Unset fields are ignored."""

    status: str | None = None
    user_id: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    search: str | None = None


class OrderRepository(BaseRepository[Order]):
    model = Order
    not_found_message = "Objednávka neexistuje."

    def _apply_filter(self, stmt: Select, filters: OrderFilter) -> Select:
        if filters.status:
            stmt = stmt.where(Order.status == filters.status)
        if filters.user_id:
            stmt = stmt.where(Order.user_id == filters.user_id)
        if filters.date_from:
            stmt = stmt.where(Order.created_at >= filters.date_from)
        if filters.date_to:
            stmt = stmt.where(Order.created_at <= filters.date_to)
        if filters.search:
            pattern = f"%{filters.search}%"
            stmt = stmt.where(
                or_(
                    Order.customer_name.ilike(pattern),
                    Order.email.ilike(pattern),
                    Order.external_id.ilike(pattern),
                )
            )
        return stmt

    async def search(
        self,
        filters: OrderFilter,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Order], int]:
        """Filtered page of orders, newest first, plus the total match count."""
        stmt = self._apply_filter(select(Order), filters)
        result = await self.session.execute(
            stmt.order_by(Order.created_at.desc()).limit(limit).offset(offset)
        )
        orders = list(result.scalars().all())

        count_stmt = self._apply_filter(select(func.count()).select_from(Order), filters)
        total = (await self.session.execute(count_stmt)).scalar_one()
        return orders, total

    async def get_by_external_id(self, external_id: str) -> Order | None:
        result = await self.session.execute(select(Order).where(Order.external_id == external_id))
        return result.scalar_one_or_none()

    async def get_by_reference(self, ref: str) -> Order | None:
        """Look an order up by external number or internal id."""
        result = await self.session.execute(
            select(Order).where(or_(Order.external_id == ref, Order.id == ref))
        )
        return result.scalars().first()

    async def external_id_exists(self, external_id: str) -> bool:
        result = await self.session.execute(
            select(Order.id).where(Order.external_id == external_id)
        )
        return result.scalar_one_or_none() is not None

    async def list_for_user(self, user_id: str) -> list[Order]:
        result = await self.session.execute(
            select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

    async def revenue_total(self) -> Decimal:
        result = await self.session.execute(select(func.coalesce(func.sum(Order.total), 0)))
        return Decimal(str(result.scalar_one()))

    async def count_by_status(self) -> dict[str, int]:
        result = await self.session.execute(
            select(Order.status, func.count()).group_by(Order.status)
        )
        return {status: count for status, count in result.all()}

    async def delete_all(self) -> None:
        for order in (await self.session.execute(select(Order))).scalars().all():
            await self.session.delete(order)
        await self.session.flush()
