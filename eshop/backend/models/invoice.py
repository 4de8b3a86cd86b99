"""
Invoice Model.

An issued invoice. Supplier and customer details are copied from the
template and order at issue time so the document never changes afterwards.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eshop.backend.models.base import Base, Money, TimestampMixin, UUIDMixin
from eshop.backend.models.order import Order


class Invoice(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "invoices"
    __table_args__ = (UniqueConstraint("issue_year", "sequence", name="uq_invoice_sequence"),)

    number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    issue_year: Mapped[int] = mapped_column(nullable=False)
    sequence: Mapped[int] = mapped_column(nullable=False)
    variable_symbol: Mapped[str] = mapped_column(String(10), nullable=False)

    supplier_name: Mapped[str] = mapped_column(String(255), nullable=False)
    supplier_ico: Mapped[str] = mapped_column(String(20), nullable=False)
    supplier_dic: Mapped[str | None] = mapped_column(String(20), nullable=True)
    supplier_vat_id: Mapped[str | None] = mapped_column(String(20), nullable=True)
    supplier_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_ico: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_dic: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_vat_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    issue_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    supply_date: Mapped[date] = mapped_column(Date, nullable=False)

    base_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    vat_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False)
    vat_value: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    template_version: Mapped[str] = mapped_column(String(50), default="default", nullable=False)

    order_id: Mapped[str] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order: Mapped[Order] = relationship(lazy="selectin")

    @property
    def order_external_id(self) -> str | None:
        return self.order.external_id if self.order else None

    def __repr__(self) -> str:
        return f"<Invoice(number={self.number!r})>"
