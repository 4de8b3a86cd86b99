"""
Catalog Models.

Categories, subcategories and products. Product galleries, spec lists and
per-language translations are stored as JSON columns.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eshop.backend.models.base import Base, Money, TimestampMixin, UUIDMixin

UNCATEGORIZED = "Nezaradené"


class Category(UUIDMixin, TimestampMixin, Base):
    """Top-level product category."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)

    subcategories: Mapped[list["SubCategory"]] = relationship(
        back_populates="category",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SubCategory.name",
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name!r})>"


class SubCategory(UUIDMixin, TimestampMixin, Base):
    """Second catalog level, unique by name within its category."""

    __tablename__ = "subcategories"
    __table_args__ = (UniqueConstraint("category_id", "name", name="uq_subcategory_name"),)

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    category_id: Mapped[str] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    category: Mapped[Category] = relationship(back_populates="subcategories")

    def __repr__(self) -> str:
        return f"<SubCategory(id={self.id}, name={self.name!r})>"


class Product(UUIDMixin, TimestampMixin, Base):
    """Sellable catalog item."""

    __tablename__ = "products"

    slug: Mapped[str] = mapped_column(String(200), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    tagline: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="EUR", nullable=False)
    discount: Mapped[int] = mapped_column(default=0, nullable=False)
    stock: Mapped[int] = mapped_column(default=0, nullable=False)
    badge: Mapped[str | None] = mapped_column(String(100), nullable=True)
    promotion: Mapped[str | None] = mapped_column(String(255), nullable=True)
    billing_period: Mapped[str | None] = mapped_column(String(50), nullable=True)
    image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    gallery: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    specs: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    translations: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    active: Mapped[bool] = mapped_column(default=True, nullable=False)

    category_id: Mapped[str | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    sub_category_id: Mapped[str | None] = mapped_column(
        ForeignKey("subcategories.id", ondelete="SET NULL"),
        nullable=True,
    )

    category: Mapped[Category | None] = relationship(lazy="selectin")
    sub_category: Mapped[SubCategory | None] = relationship(lazy="selectin")

    @property
    def category_name(self) -> str:
        return self.category.name if self.category else UNCATEGORIZED

    @property
    def sub_category_name(self) -> str | None:
        return self.sub_category.name if self.sub_category else None

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, slug={self.slug!r})>"
