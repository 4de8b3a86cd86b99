"""
Invoice Repository.
"""

from sqlalchemy import func, select

from eshop.backend.models.invoice import Invoice
from eshop.backend.repositories.base import BaseRepository


class InvoiceRepository(BaseRepository[Invoice]):
    model = Invoice
    not_found_message = "Faktúra neexistuje."

    async def get_by_number(self, number: str) -> Invoice | None:
        result = await self.session.execute(select(Invoice).where(Invoice.number == number))
        return result.scalar_one_or_none()

    async def max_sequence(self, year: int) -> int:
        """Highest sequence issued in `year`, 0 when none."""
        result = await self.session.execute(
            select(func.max(Invoice.sequence)).where(Invoice.issue_year == year)
        )
        return result.scalar_one() or 0

    async def list_recent(self) -> list[Invoice]:
        result = await self.session.execute(
            select(Invoice).order_by(Invoice.issue_date.desc(), Invoice.sequence.desc())
        )
        return list(result.scalars().all())

    async def delete_all(self) -> None:
        for invoice in (await self.session.execute(select(Invoice))).scalars().all():
            await self.session.delete(invoice)
        await self.session.flush()
