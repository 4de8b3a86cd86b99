"""
Order Models.

Orders with their line items and an append-only status history.
"""

from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eshop.backend.core.utils import utc_now
from eshop.backend.models.base import Base, Money, TimestampMixin, UUIDMixin


class OrderStatus(StrEnum):
    NEW = "new"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


STATUS_LABELS: dict[OrderStatus, str] = {
    OrderStatus.NEW: "Nová",
    OrderStatus.CONFIRMED: "Potvrdená",
    OrderStatus.PROCESSING: "Spracováva sa",
    OrderStatus.SHIPPED: "Odoslaná",
    OrderStatus.DELIVERED: "Doručená",
    OrderStatus.CANCELLED: "Zrušená",
}

# Backoffice codes and labels from the older admin panel
LEGACY_STATUS_ALIASES: dict[str, OrderStatus] = {
    "PRIJATA": OrderStatus.NEW,
    "PRIJATÁ": OrderStatus.NEW,
    "SPRACOVANIE": OrderStatus.PROCESSING,
    "EXPEDOVANA": OrderStatus.SHIPPED,
    "EXPEDOVANÁ": OrderStatus.SHIPPED,
    "DOKONCENA": OrderStatus.DELIVERED,
    "DOKONČENÁ": OrderStatus.DELIVERED,
    "STORNOVANA": OrderStatus.CANCELLED,
    "STORNOVANÁ": OrderStatus.CANCELLED,
}


def parse_order_status(value: str | None) -> OrderStatus:
    """
    Accept an enum value, a current Slovak label or a legacy backoffice status.

    Anything unrecognised is treated as a new order.
    """
    if not value:
        return OrderStatus.NEW
    candidate = value.strip()
    try:
        return OrderStatus(candidate.lower())
    except ValueError:
        pass
    for status, label in STATUS_LABELS.items():
        if label.lower() == candidate.lower():
            return status
    return LEGACY_STATUS_ALIASES.get(candidate.upper(), OrderStatus.NEW)


class Order(UUIDMixin, TimestampMixin, Base):
    """Customer order. `external_id` is the number shown to people."""

    __tablename__ = "orders"

    external_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    company_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=OrderStatus.NEW, nullable=False, index=True)
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(100), default="unspecified", nullable=False)
    invoice_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    assigned_to: Mapped[str | None] = mapped_column(String(100), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.position",
    )
    history: Mapped[list["OrderHistory"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderHistory.timestamp.desc()",
    )

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[parse_order_status(self.status)]

    def __repr__(self) -> str:
        return f"<Order(external_id={self.external_id!r}, status={self.status!r})>"


class OrderItem(UUIDMixin, Base):
    """Line item. Name and price are copied so later catalog edits don't rewrite orders."""

    __tablename__ = "order_items"

    order_id: Mapped[str] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(default=0, nullable=False)
    product_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    order: Mapped[Order] = relationship(back_populates="items")

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.price) * self.quantity


class OrderHistory(UUIDMixin, Base):
    """One status change."""

    __tablename__ = "order_history"

    order_id: Mapped[str] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    order: Mapped[Order] = relationship(back_populates="history")
